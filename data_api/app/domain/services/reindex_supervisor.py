"""
ReindexSupervisor
==================

백그라운드 재색인을 최대 하나만 돌리는 감독자.

상태: idle → running(generation) → idle | cancelled

- start() 는 진행 중인 세대에 취소 신호를 보내고, 세대 번호를 올려 새 스레드를 띄운다.
- 세대가 끝나면 락을 잡은 채로 "아직 최신 세대이고 취소되지 않았는지" 확인한 뒤에만
  alias 를 옮긴다. 검색은 항상 마지막으로 완료된 세대를 본다.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict

from data_api.app.domain.models import ReindexState, ReindexStatus
from data_api.app.domain.services.index_service import IndexService

logger = logging.getLogger(__name__)


class ReindexSupervisor:

    def __init__(self, service: IndexService) -> None:
        self._service = service
        self._lock = threading.RLock()
        self._status = ReindexStatus()
        self._cancel: threading.Event | None = None
        self._thread: threading.Thread | None = None

    # ================= public API =================
    def start(self) -> int:
        """
        새 재색인 세대를 시작한다. 진행 중인 세대는 취소된다.
        Returns:
            int: 새 세대 번호
        """
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()

            generation = self._status.generation + 1
            cancel = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(generation, cancel),
                name=f"reindex-{generation}",
                daemon=True,
            )
            self._status = self._status.model_copy(update={
                "state": ReindexState.running,
                "generation": generation,
                "last_error": None,
            })
            self._cancel = cancel
            self._thread = thread
            thread.start()

        logger.info("reindex started", extra={"generation": generation})
        return generation

    def cancel(self) -> None:
        with self._lock:
            if self._cancel is None or self._status.state != ReindexState.running:
                return
            self._cancel.set()
            self._status = self._status.model_copy(update={"state": ReindexState.cancelled})
        logger.info("reindex cancelled", extra={"generation": self._status.generation})

    def status(self) -> ReindexStatus:
        with self._lock:
            return self._status.model_copy()

    def wait(self, timeout: float | None = None) -> bool:
        """현재 세대 스레드가 끝날 때까지 기다린다. 시간 안에 끝나면 True."""
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def shutdown(self, timeout: float | None = 10.0) -> None:
        self.cancel()
        if not self.wait(timeout):
            logger.warning("reindex thread did not stop within %ss", timeout)

    # ================= worker =================
    def _is_current(self, generation: int, cancel: threading.Event) -> bool:
        return generation == self._status.generation and not cancel.is_set()

    def _run(self, generation: int, cancel: threading.Event) -> None:
        try:
            built = self._service.build_generation(generation, cancel)
        except Exception as e:
            logger.exception("reindex generation %s failed", generation, extra={"generation": generation})
            self._finish(generation, error=str(e))
            return

        with self._lock:
            if not self._is_current(generation, cancel):
                # 새 세대가 publish 할 때 이 세대 인덱스도 정리된다
                logger.info("generation %s superseded, not publishing", generation,
                            extra={"generation": generation})
                return
            try:
                alias = self._service.publish(built["index_name"])
            except Exception as e:
                logger.exception("publish of generation %s failed", generation, extra={"generation": generation})
                self._finish(generation, error=str(e))
                return
            self._finish(generation, result=built | alias)

        logger.info("reindex completed: %s docs", built.get("indexed"), extra={"generation": generation})

    def _finish(self, generation: int, result: Dict[str, Any] | None = None, error: str | None = None) -> None:
        with self._lock:
            if generation != self._status.generation:
                return
            update: Dict[str, Any] = {"last_error": error}
            if self._status.state == ReindexState.running:
                update["state"] = ReindexState.idle
            if result is not None:
                update["completed_generation"] = generation
                update["last_result"] = result
            self._status = self._status.model_copy(update=update)
