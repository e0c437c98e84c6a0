from fastapi import HTTPException, Request

from ..bot.stateful import StatefulBot
from ..database.base_repo import BaseRepository


def get_stateful(request: Request) -> StatefulBot:
    stateful = getattr(request.app.state, "stateful", None)
    if stateful is None:
        raise HTTPException(status_code=503, detail="Bot is not set up")
    return stateful


def get_repo(request: Request) -> BaseRepository:
    return get_stateful(request).state_manager.repo
