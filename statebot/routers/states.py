from fastapi import APIRouter, HTTPException, Depends

from ..dependencies.dependencies import get_repo
from ..database.base_repo import BaseRepository
from ..models.state_models import MessageState
from ..common.log import log_api_request

router = APIRouter(
    prefix="/states",
    tags=["states"],
    responses={404: {"description": "Not found"}},
)


@router.get("/{chat_id}/latest", response_model=MessageState)
async def get_latest_state(chat_id: int, repo: BaseRepository = Depends(get_repo)) -> MessageState:
    log_api_request(f"/states/{chat_id}/latest", "GET")

    state = await repo.find_latest_state(chat_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"No state stored for chat {chat_id}")
    return state
