from typing import List, Optional
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing_extensions import Annotated

from .bot.telethon_models import ChatScope


class AppConfig(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Created once in ``main`` and handed to whatever needs it.
    """
    model_config = SettingsConfigDict(env_file="./.env", extra="ignore")

    API_ID: str
    API_HASH: str
    BOT_TOKEN: str
    BOT_USERNAME: Optional[str] = None

    # MONGODB

    MONGO_HOST: str = "localhost"
    MONGO_PORT: int = 27017
    MONGO_INITDB_DATABASE: str = "stateful"
    MONGO_INITDB_ROOT_USERNAME: Optional[str] = None
    MONGO_INITDB_ROOT_PASSWORD: Optional[str] = None

    DATABASE_URL: Optional[str] = None

    @model_validator(mode='after')
    def assemble_db_connection(self) -> 'AppConfig':
        if not self.DATABASE_URL:
            if self.MONGO_INITDB_ROOT_USERNAME and self.MONGO_INITDB_ROOT_PASSWORD:
                self.DATABASE_URL = (
                    f"mongodb://{self.MONGO_INITDB_ROOT_USERNAME}:{self.MONGO_INITDB_ROOT_PASSWORD}"
                    f"@{self.MONGO_HOST}:{self.MONGO_PORT}/{self.MONGO_INITDB_DATABASE}?authSource=admin"
                )
            else:
                self.DATABASE_URL = f"mongodb://{self.MONGO_HOST}:{self.MONGO_PORT}/{self.MONGO_INITDB_DATABASE}"
        return self

    # DISPATCH

    CHAT_SCOPE: ChatScope = ChatScope.GROUP

    # Logging
    LOG_LEVEL: str = "INFO"  # can be: TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL

    # LUNCH REMINDERS

    GROUPS: Annotated[List[int], NoDecode] = []
    TIMEZONE: int = 3  # hours from UTC
    CHECK_INTERVAL_MINUTES: int = 15

    # HTTP API
    API_HOST: str = "localhost"
    API_PORT: int = 8000

    @field_validator('GROUPS', mode='before')
    @classmethod
    def parse_groups(cls, v):
        # "-100123, -100456" as well as a JSON list
        if isinstance(v, str):
            v = v.strip().strip("[]")
            return [int(part) for part in v.split(",") if part.strip()]
        return v

    @field_validator('CHAT_SCOPE', mode='before')
    @classmethod
    def parse_chat_scope(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v
