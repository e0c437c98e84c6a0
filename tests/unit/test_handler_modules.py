import unittest
from unittest.mock import AsyncMock, MagicMock

from statebot.bot.conditions import (
    CallbackCondition, InternalCallbackCondition, MessageCondition, When, as_condition
)
from statebot.bot.handler_module import HandlerModule
from statebot.bot.keyboards import InlineKeyboard, KeyboardManager, ReplyKeyboard
from statebot.bot.stateful import StatefulBot
from statebot.bot.telethon_models import (
    CallbackQueryModel, ChatScope, ChatType, Update, UpdateKind, UpdateMessage
)
from statebot.models.state_models import MessageState


def text_update(text, kind=UpdateKind.MESSAGE):
    return Update(kind=kind, message=UpdateMessage(id=1, chat_id=-1, chat_type=ChatType.GROUP, text=text))


def callback_update(data):
    return Update(
        kind=UpdateKind.CALLBACK_QUERY,
        callback_query=CallbackQueryModel(id="1", data=data, message=UpdateMessage(id=1, chat_id=-1))
    )


def handler_for(update):
    handler = MagicMock()
    handler.update = update
    return handler


class TestConditions(unittest.IsolatedAsyncioTestCase):
    async def test_message_condition(self):
        condition = MessageCondition("Settings\n")

        self.assertTrue(await condition.matches(handler_for(text_update("Settings"))))
        self.assertFalse(await condition.matches(handler_for(text_update("Settings\n"))))
        self.assertFalse(await condition.matches(handler_for(text_update("Settings", kind=UpdateKind.EDITED_MESSAGE))))
        self.assertFalse(await condition.matches(handler_for(callback_update("Settings"))))

    async def test_message_condition_without_text_matches_any_text(self):
        condition = MessageCondition()

        self.assertTrue(await condition.matches(handler_for(text_update("anything"))))
        self.assertFalse(await condition.matches(handler_for(text_update(None))))

    async def test_callback_condition(self):
        condition = CallbackCondition("refresh\n", name="Refresh")

        self.assertTrue(await condition.matches(handler_for(callback_update("refresh"))))
        self.assertFalse(await condition.matches(handler_for(callback_update("other"))))
        self.assertFalse(await condition.matches(handler_for(text_update("refresh"))))
        self.assertTrue(await CallbackCondition().matches(handler_for(callback_update(None))))

    async def test_internal_condition_matches_prefix(self):
        condition = InternalCallbackCondition("paginator")

        self.assertTrue(await condition.matches(handler_for(callback_update("stinternal-paginator:3"))))
        self.assertFalse(await condition.matches(handler_for(callback_update("paginator:3"))))
        self.assertFalse(await condition.matches(handler_for(text_update("stinternal-paginator:3"))))

    async def test_when_accepts_sync_and_async_predicates(self):
        async def is_async(handler):
            return True

        self.assertTrue(await When(is_async).matches(handler_for(text_update("x"))))
        self.assertFalse(await When(lambda handler: 0).matches(handler_for(text_update("x"))))

    def test_as_condition(self):
        condition = MessageCondition("x")

        self.assertIs(as_condition(condition), condition)
        self.assertIsInstance(as_condition(lambda handler: True), When)
        with self.assertRaises(TypeError):
            as_condition("not a condition")


class TestHandlerModule(unittest.IsolatedAsyncioTestCase):
    def test_declaration_order_and_defaults(self):
        module = HandlerModule("main")

        @module.message("a")
        async def first(handler):
            pass

        @module.default()
        async def fallback(handler):
            pass

        @module.callback("b")
        def second(handler):
            pass

        self.assertEqual(len(module), 3)
        self.assertEqual([m.name for m in module.methods], ["first", "fallback", "second"])
        self.assertEqual([m.name for m in module.regular_methods], ["first", "second"])
        self.assertEqual([m.name for m in module.default_methods], ["fallback"])
        self.assertEqual(module.default_methods[0].conditions, [])

    def test_decorators_return_the_function(self):
        module = HandlerModule()

        async def func(handler):
            return "result"

        self.assertIs(module.message("x")(func), func)

    async def test_invoke_supports_sync_and_async(self):
        module = HandlerModule()
        sync_method = module.add_method(lambda handler: "sync", [MessageCondition("x")])

        async def async_func(handler):
            return "async"

        async_method = module.add_method(async_func, [MessageCondition("y")])

        self.assertEqual(await sync_method.invoke(MagicMock()), "sync")
        self.assertEqual(await async_method.invoke(MagicMock()), "async")

    async def test_matches_stops_at_first_failing_condition(self):
        second = AsyncMock(return_value=True)
        module = HandlerModule()
        method = module.add_method(lambda handler: None, [When(lambda handler: False), When(second)])

        self.assertFalse(await method.matches(handler_for(text_update("x"))))
        second.assert_not_called()

    async def test_matches_can_exclude_display_condition(self):
        module = HandlerModule()
        method = module.add_method(lambda handler: None, [MessageCondition("x"), When(lambda handler: True)])
        handler = handler_for(text_update("something else"))

        self.assertFalse(await method.matches(handler))
        self.assertTrue(await method.matches(handler, exclude=MessageCondition))

    def test_get_condition(self):
        module = HandlerModule()
        condition = CallbackCondition("b")
        method = module.add_method(lambda handler: None, [When(lambda handler: True), condition])

        self.assertIs(method.get_condition(CallbackCondition), condition)
        self.assertIsNone(method.get_condition(MessageCondition))


class TestStatefulBot(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = AsyncMock()
        self.repo = AsyncMock()
        self.stateful = StatefulBot(self.client, self.repo)
        self.stateful.register("main", HandlerModule("main"))
        self.stateful._dispatch = AsyncMock()

    async def test_group_messages_are_dispatched(self):
        update = text_update("hi")

        await self.stateful.handle_update(update)

        self.stateful._dispatch.assert_awaited_once_with(update)

    async def test_private_messages_are_dropped_in_group_scope(self):
        update = Update(kind=UpdateKind.MESSAGE,
                        message=UpdateMessage(id=1, chat_id=5, chat_type=ChatType.PRIVATE, text="hi"))

        await self.stateful.handle_update(update)

        self.stateful._dispatch.assert_not_awaited()

    async def test_any_scope_accepts_private_messages(self):
        self.stateful.chat_scope = ChatScope.ANY
        update = Update(kind=UpdateKind.MESSAGE,
                        message=UpdateMessage(id=1, chat_id=5, chat_type=ChatType.PRIVATE, text="hi"))

        await self.stateful.handle_update(update)

        self.stateful._dispatch.assert_awaited_once()

    async def test_callbacks_are_answered_first(self):
        await self.stateful.handle_update(callback_update("x"))

        self.client.answer_callback.assert_awaited_once_with("1")
        self.stateful._dispatch.assert_awaited_once()

    async def test_callback_without_message_is_answered_and_dropped(self):
        update = Update(kind=UpdateKind.CALLBACK_QUERY, callback_query=CallbackQueryModel(id="2", data="x"))

        await self.stateful.handle_update(update)

        self.client.answer_callback.assert_awaited_once_with("2")
        self.stateful._dispatch.assert_not_awaited()

    def test_resolve_module(self):
        other = HandlerModule("other")
        self.stateful.register("other", other)

        self.assertEqual(self.stateful.resolve_module(MessageState(chat_id=1, handler_id="other")), ("other", other))
        self.assertEqual(self.stateful.resolve_module(MessageState(chat_id=1))[0], "main")
        self.assertEqual(self.stateful.resolve_module(MessageState(chat_id=1, handler_id="gone"))[0], "main")

    def test_handlers_in_registration_order(self):
        self.stateful.register("second", HandlerModule())

        self.assertEqual([handler_id for handler_id, _ in self.stateful.handlers], ["main", "second"])


class TestKeyboards(unittest.TestCase):
    def test_row_breaks(self):
        keyboard = ReplyKeyboard.from_labels(["A", "B\n", "C\n"])

        self.assertEqual([[button.text for button in row] for row in keyboard.rows], [["A", "B"], ["C"]])
        self.assertTrue(keyboard.resize)

    def test_inline_from_labels_uses_label_as_data(self):
        keyboard = InlineKeyboard.from_labels(["yes\n", "no"])

        self.assertEqual(keyboard.buttons, [("yes", "yes"), ("no", "no")])

    def test_pagination_row(self):
        self.assertEqual(KeyboardManager.get_pagination_row(0, 1, "p:"), [])
        self.assertEqual(
            KeyboardManager.get_pagination_row(1, 3, "p:"),
            [("◀ Previous", "p:0"), ("2/3", "p:1"), ("Next ▶", "p:2")]
        )


if __name__ == "__main__":
    unittest.main()
