from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Dict, Any
from data_api.app.api.deps import get_supervisor
from data_api.app.domain.services.reindex_supervisor import ReindexSupervisor
import logging
logger = logging.getLogger(__name__)


router = APIRouter(prefix="/index", tags=["index"])

class ApiResponse(BaseModel):
    """
    재색인 응답
    """
    success: bool = Field(..., description="성공 여부")
    message: str = Field(..., description="결과 메시지")
    data: Dict[str, Any] = Field(
        ...,
        description="재색인 세대 번호 또는 감독자 상태"
    )

@router.post(
    "",
    summary="재색인 시작",
    description=(
        "DATA_PATH 의 data.yaml/CSV 로 새 세대 인덱스를 백그라운드에서 만듭니다. "
        "진행 중인 재색인이 있으면 취소하고 새 세대로 대체합니다. "
        "alias 는 세대가 끝난 뒤에만 새 인덱스로 옮겨집니다."
    ),
    operation_id="startReindex",
    status_code=202,
    response_model=ApiResponse,
    responses={
        202: {
            "description": "재색인 시작",
            "content": {
                "application/json": {
                    "examples": {
                        "started": {
                            "summary": "세대 3 시작",
                            "value": {
                                "success": True,
                                "message": "재색인 시작",
                                "data": {"generation": 3}
                            }
                        }
                    }
                }
            },
        },
        500: {"description": "서버 내부 오류"},
    },
)
def start_reindex(supervisor: ReindexSupervisor = Depends(get_supervisor)):
    generation = supervisor.start()
    logger.info("IndexRequest: generation=%s", generation)
    return ApiResponse(success=True, message="재색인 시작", data={"generation": generation})

@router.get(
    "",
    summary="재색인 상태",
    description="재색인 감독자 상태(idle/running/cancelled), 현재/완료 세대, 마지막 결과를 반환합니다.",
    operation_id="reindexStatus",
    status_code=200,
    response_model=ApiResponse,
    responses={
        200: {
            "description": "상태 조회 성공",
            "content": {
                "application/json": {
                    "examples": {
                        "idle": {
                            "summary": "완료된 상태",
                            "value": {
                                "success": True,
                                "message": "조회 성공",
                                "data": {
                                    "state": "idle",
                                    "generation": 2,
                                    "completed_generation": 2,
                                    "last_result": {
                                        "index_name": ["dev-cities-2"],
                                        "alias_name": "dev-cities",
                                        "indexed": 100,
                                        "errors": [],
                                        "files": 1,
                                        "cancelled": False,
                                        "generation": 2
                                    },
                                    "last_error": None
                                }
                            }
                        }
                    }
                }
            },
        },
    },
)
def reindex_status(supervisor: ReindexSupervisor = Depends(get_supervisor)):
    return ApiResponse(success=True, message="조회 성공", data=supervisor.status().model_dump(mode="json"))
