"""
Stateful update dispatcher.

``StatefulBot`` owns the handler module registry and turns every accepted
update into exactly one handler method call:

1. drop updates that do not carry a conversation (or come from chats outside
   the configured scope) and acknowledge callback queries right away,
2. load the conversation state of the update,
3. pick the module the state points at (the first registered one if unset
   or unknown),
4. try the built-in internal module first, then the conversation's module,
5. invoke the resolved method; failures are logged and never propagate.

Within a module the first non-default method (in declaration order) whose
conditions all match wins. If none matches and the update is not a callback
query, the first default method whose own conditions match is used.
"""

import asyncio
import weakref
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from .handler_module import HandlerMethod, HandlerModule
from .internal_handler import internal_handler, INTERNAL_HANDLER_ID
from .state_manager import StateManager
from .telethon_models import ChatScope, Update, UpdateKind
from .update_handler import UpdateHandler
from ..exceptions.dispatch_exceptions import HandlerRegistrationError, HandlerNotRegisteredError
from ..models.state_models import MessageState
from ..common.log import (
    log_handler_registered, log_update_dropped, log_method_resolved, log_resolution_miss,
    log_invocation_failed, log_telegram_callback, log_telegram_command, set_update_context, Logger
)

if TYPE_CHECKING:
    from ..api.base_transport import BaseTransport
    from ..database.base_repo import BaseRepository


class StatefulBot:
    """Routes updates to handler modules and keeps their conversation state."""

    def __init__(self, client: "BaseTransport", repo: "BaseRepository", chat_scope: ChatScope = ChatScope.GROUP):
        """
        Args:
            client: Transport used to talk to Telegram
            repo: Repository storing message states
            chat_scope: Chats messages are accepted from
        """
        self.client = client
        self.state_manager = StateManager(repo)
        self.chat_scope = chat_scope
        self.logger = Logger("StatefulBot")

        self._handlers: Dict[str, HandlerModule] = {}
        # one lock per chat while updates of that chat are in flight
        self._chat_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    ### SECTION: registry

    def register(self, handler_id: str, module: HandlerModule) -> None:
        """
        Register a handler module. The first registered module is the root
        module conversations start in.

        Raises:
            HandlerRegistrationError: If the ID is taken or reserved
        """
        if handler_id == INTERNAL_HANDLER_ID:
            raise HandlerRegistrationError(handler_id, f"Handler ID '{handler_id}' is reserved")
        if handler_id in self._handlers:
            raise HandlerRegistrationError(handler_id)

        self._handlers[handler_id] = module
        log_handler_registered(handler_id, len(module))

    def get_module(self, handler_id: str) -> HandlerModule:
        try:
            return self._handlers[handler_id]
        except KeyError:
            raise HandlerNotRegisteredError(handler_id) from None

    @property
    def handlers(self) -> List[Tuple[str, HandlerModule]]:
        """Registered modules in registration order."""
        return list(self._handlers.items())

    def resolve_module(self, state: MessageState) -> Tuple[str, HandlerModule]:
        """Module the state points at, falling back to the first registered one."""
        if state.handler_id is not None and state.handler_id in self._handlers:
            return state.handler_id, self._handlers[state.handler_id]
        return next(iter(self._handlers.items()))

    def create_handler(self, handler_id: str, module: HandlerModule, state: MessageState, update: Update) -> UpdateHandler:
        return UpdateHandler(handler_id, module, self.client, self, state, update)

    ### SECTION: resolution

    async def get_method(self, handler: UpdateHandler) -> Optional[HandlerMethod]:
        """Find the method of the handler's module to call for its update."""
        for method in handler.module.regular_methods:
            if method.conditions and await method.matches(handler):
                return method

        if not handler.update.is_callback:
            return await self.get_default(handler)
        return None

    @staticmethod
    async def get_default(handler: UpdateHandler) -> Optional[HandlerMethod]:
        """Find the default method of the handler's module."""
        for method in handler.module.default_methods:
            if await method.matches(handler):
                return method
        return None

    ### SECTION: update handling

    def _accepts(self, update: Update) -> bool:
        if update.kind in (UpdateKind.MESSAGE, UpdateKind.EDITED_MESSAGE):
            if not self.chat_scope.allows(update.chat_type):
                log_update_dropped(update.kind.value, f"chat type {update.chat_type.value} out of scope")
                return False
            return True
        if update.kind is UpdateKind.CALLBACK_QUERY:
            return update.callback_query is not None
        log_update_dropped(update.kind.value, "unsupported update kind")
        return False

    async def handle_update(self, update: Update) -> None:
        """
        Handle a polled update.

        Raises:
            StateStoreError: If the conversation state cannot be loaded
        """
        if not self._accepts(update):
            return

        if update.is_callback:
            # stop the loading indicator no matter how the callback is handled
            await self.client.answer_callback(update.callback_query.id)
            log_telegram_callback(update.get_user_id(), update.callback_data or "", update.get_chat_id())
        elif update.text is not None and update.text.startswith("/"):
            log_telegram_command(update.get_user_id(), update.text, update.get_chat_id())

        chat_id = update.get_chat_id()
        if chat_id is None:
            log_update_dropped(update.kind.value, "no chat ID")
            return
        if not self._handlers:
            self.logger.warning("No handler modules registered, dropping update")
            return

        lock = self._chat_locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._chat_locks[chat_id] = lock

        async with lock:
            set_update_context(chat_id)
            await self._dispatch(update)

    async def _dispatch(self, update: Update) -> None:
        state = await self.state_manager.load(update)
        handler_id, module = self.resolve_module(state)

        handler = self.create_handler(INTERNAL_HANDLER_ID, internal_handler, state, update)
        method = await self.get_method(handler)
        if method is None:
            handler = self.create_handler(handler_id, module, state, update)
            method = await self.get_method(handler)
            if method is None:
                log_resolution_miss(handler_id, update.get_user_id(), update.get_message_id())
                return

        log_method_resolved(handler.module_id, method.name, update.get_chat_id())
        await self.invoke(method, handler)

    async def invoke(self, method: HandlerMethod, handler: UpdateHandler) -> None:
        """Invoke a handler method, logging instead of raising on failure."""
        try:
            await method.invoke(handler)
        except Exception as e:
            log_invocation_failed(handler.module_id, method.name, str(e))

    async def run_default(self, handler: UpdateHandler, handler_id: str) -> None:
        """
        Run the default method of another module for the handler's update.

        Raises:
            HandlerNotRegisteredError: If no module with this ID is registered
        """
        module = self.get_module(handler_id)
        new_handler = self.create_handler(handler_id, module, handler.state, handler.update)
        method = await self.get_default(new_handler)
        if method is not None:
            await self.invoke(method, new_handler)
        # the default may have moved the conversation onto a new message
        handler.state = new_handler.state
