import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI

import uvicorn

from .config import AppConfig
from .api.telethon_api import TelethonAPI
from .bot.stateful import StatefulBot
from .database.base_repo import BaseRepository
from .database.beanie_repo import BeanieRepository
from .lunch.handlers import create_main_handler, MAIN_HANDLER_ID
from .lunch.notifier import LunchNotifier
from .lunch.schedule import LunchSchedule
from .routers import bot, states
from .common.log import (
    log_app_startup, log_app_shutdown, log_database_connected, log_database_connection_failed,
    log_database_error, set_log_level
)


def create_app(stateful: StatefulBot, repo: Optional[BaseRepository] = None,
               database_url: Optional[str] = None) -> FastAPI:
    """
    Build the HTTP API for a dispatcher.

    With ``repo`` and ``database_url`` the repository is connected on startup
    and closed on shutdown.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_app_startup()

        if repo is not None and database_url is not None:
            try:
                await repo.connect(database_url)
                log_database_connected(database_url)
            except Exception as e:
                log_database_connection_failed(str(e))
                raise e

        yield

        if repo is not None and database_url is not None:
            try:
                await repo.close()
            except Exception as e:
                log_database_error("shutdown", str(e))
        log_app_shutdown()

    app = FastAPI(lifespan=lifespan)
    app.state.stateful = stateful

    app.include_router(bot.router)
    app.include_router(states.router)

    return app


async def main(config: Optional[AppConfig] = None) -> None:
    config = config or AppConfig()
    set_log_level(config.LOG_LEVEL)

    ### connecting bot
    telethon_api = TelethonAPI(
        config.API_ID,
        config.API_HASH,
        config.BOT_TOKEN
    )
    mongodb = BeanieRepository(config.MONGO_INITDB_DATABASE)

    stateful = StatefulBot(telethon_api, mongodb, chat_scope=config.CHAT_SCOPE)
    schedule = LunchSchedule(utc_offset=config.TIMEZONE)
    stateful.register(MAIN_HANDLER_ID, create_main_handler(schedule, config.BOT_USERNAME))
    telethon_api.set_update_handler(stateful.handle_update)

    notifier = LunchNotifier(
        telethon_api,
        schedule,
        config.GROUPS,
        interval=timedelta(minutes=config.CHECK_INTERVAL_MINUTES)
    )

    app = create_app(stateful, mongodb, config.DATABASE_URL)
    uvicorn_server = uvicorn.Server(uvicorn.Config(app, host=config.API_HOST, port=config.API_PORT))

    async def run_telethon():
        # updates need the database, which the API lifespan connects
        while not uvicorn_server.started:
            if uvicorn_server.should_exit:
                raise RuntimeError("HTTP API failed to start")
            await asyncio.sleep(0.1)
        await telethon_api.run()

    await asyncio.gather(uvicorn_server.serve(), run_telethon(), notifier.run())


if __name__ == "__main__":
    asyncio.run(main())
