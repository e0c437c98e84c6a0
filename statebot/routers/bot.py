from typing import List

from fastapi import APIRouter, Depends

from ..bot.stateful import StatefulBot
from ..dependencies.dependencies import get_stateful
from ..schemas.handlers import HandlerInfo, HealthStatus
from ..common.log import log_api_request

router = APIRouter(
    tags=["bot"],
)


@router.get("/health", response_model=HealthStatus)
async def health(stateful: StatefulBot = Depends(get_stateful)) -> HealthStatus:
    log_api_request("/health", "GET")
    return HealthStatus(handlers=len(stateful.handlers))


@router.get("/handlers", response_model=List[HandlerInfo])
async def list_handlers(stateful: StatefulBot = Depends(get_stateful)) -> List[HandlerInfo]:
    log_api_request("/handlers", "GET")
    return [
        HandlerInfo(id=handler_id, description=module.description, methods=[m.name for m in module.methods])
        for handler_id, module in stateful.handlers
    ]
