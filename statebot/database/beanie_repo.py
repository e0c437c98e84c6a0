from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError
from beanie import init_beanie
from beanie.exceptions import DocumentNotFound
from typing import Optional

from .base_repo import BaseRepository
from ..models.beanie_models import MessageStateDocument
from ..models.state_models import MessageState
from ..exceptions.dispatch_exceptions import StateStoreError
from ..common.log import (
    log_database_connection_failed, log_database_error, log_database_disconnected, Logger
)


class BeanieRepository(BaseRepository):
    """MongoDB state store based on Beanie documents."""

    def __init__(self, database_name: str = "stateful") -> None:
        self.uri = None
        self.database_name = database_name
        self.db = None
        self.logger = Logger("BeanieRepository")
        self.client = None

    # ---------------------------
    #     Connection
    # ---------------------------

    async def connect(self, uri):
        self.uri = uri

        try:
            self.client = AsyncMongoClient(self.uri)
            self.db = self.client[self.database_name]

            await init_beanie(self.db, document_models=[MessageStateDocument])

            await self.ping()

        except Exception as e:
            log_database_connection_failed(str(e))
            raise

    async def close(self):
        try:
            if self.client:
                await self.client.close()
            log_database_disconnected()
        except Exception as e:
            log_database_error("close_connection", str(e))

    # ---------------------------
    #     Helper Methods
    # ---------------------------

    async def ping(self):
        try:
            if self.client:
                await self.client.admin.command('ping')
        except Exception as e:
            log_database_error("ping", str(e))

    # ---------------------------
    #     Access Database
    # ---------------------------

    ### Message States ###

    async def find_state_by_message(self, chat_id: int, message_id: Optional[int]) -> Optional[MessageState]:
        if message_id is None:
            return None

        try:
            document = await MessageStateDocument.find_one(
                MessageStateDocument.chat_id == chat_id,
                MessageStateDocument.message_id == message_id
            )
        except PyMongoError as e:
            log_database_error("find_state_by_message", str(e), {"chat_id": chat_id, "message_id": message_id})
            raise StateStoreError("find_state_by_message", e) from e

        return document.to_state() if document else None

    async def find_latest_state(self, chat_id: int) -> Optional[MessageState]:
        try:
            document = await MessageStateDocument.find(
                MessageStateDocument.chat_id == chat_id
            ).sort(-MessageStateDocument.id).first_or_none()
        except PyMongoError as e:
            log_database_error("find_latest_state", str(e), {"chat_id": chat_id})
            raise StateStoreError("find_latest_state", e) from e

        return document.to_state() if document else None

    async def insert_state(self, state: MessageState) -> MessageState:
        document = MessageStateDocument.from_state(state)
        try:
            await document.insert()
        except PyMongoError as e:
            log_database_error("insert_state", str(e), {"chat_id": state.chat_id, "message_id": state.message_id})
            raise StateStoreError("insert_state", e) from e

        state.state_id = str(document.id)
        self.logger.trace(f"Inserted state {state.state_id}", chat_id=state.chat_id, message_id=state.message_id)
        return state

    async def replace_state(self, state: MessageState) -> None:
        if state.state_id is None:
            raise StateStoreError("replace_state", ValueError("state has not been inserted yet"))

        document = MessageStateDocument.from_state(state)
        try:
            await document.replace()
        except (PyMongoError, DocumentNotFound) as e:
            log_database_error("replace_state", str(e), {"state_id": state.state_id})
            raise StateStoreError("replace_state", e) from e
