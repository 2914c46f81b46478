from fastapi import APIRouter, Depends

from data_api.app.api.deps import get_context
from data_api.app.platform.context import AppContext

router = APIRouter(prefix="/health", tags=["health"])

@router.get("")
def health(ctx: AppContext = Depends(get_context)):
    status = ctx.supervisor.status()
    return {
        "ok": True,
        "index": ctx.dictionary.scoped_index_name(),
        "reindex": status.state.value,
        "completed_generation": status.completed_generation,
    }
