"""Roteamento de updates do Telegram (comandos, botões e texto livre)."""
import json

import pytest

from telegram_relay.bot.router import parse_command
from telegram_relay.core.errors import StoreUnavailable
from telegram_relay.domain.services.notify_service import NotifyService
from telegram_relay.ports.interfaces import NotificationRequestDTO, UpdateDTO
from telegram_relay.repo.keys import KeySchema

from helpers import callback_update, message_update

KEYS = KeySchema()


def handle(router, raw: dict) -> str:
    return router.handle(UpdateDTO.model_validate(raw))


def put_token(store, token: str, value: dict) -> None:
    store.set(KEYS.token(token), json.dumps(value), ttl_s=600)


def link_chat(router, store, chat_id: int = 10, account_id: str = "p42") -> None:
    put_token(store, "TOK", {"userId": account_id})
    assert handle(router, message_update(chat_id, "/link TOK")) == "linked"


class TestParseCommand:
    def test_word_and_args(self):
        assert parse_command("/start ABC123") == ("start", "ABC123")

    def test_bot_suffix_is_stripped(self):
        assert parse_command("/Status@GameRelayBot") == ("status", "")

    def test_multiline_args(self):
        assert parse_command("/reply\nhello there") == ("reply", "hello there")


class TestCommands:
    def test_start_with_token_links_then_status_shows_account(self, router, store, telegram):
        put_token(store, "ABC123", {"accountId": "p42", "serverId": "eu1"})

        assert handle(router, message_update(10, "/start ABC123")) == "linked"
        assert "`p42`" in telegram.last["text"]
        assert "eu1" in telegram.last["text"]
        assert store.get(KEYS.chat(10)) == "p42"

        assert handle(router, message_update(10, "/status")) == "status"
        assert "`p42`" in telegram.last["text"]
        assert telegram.last["keyboard"]["inline_keyboard"][0][1]["callback_data"] == "disconnect"

    def test_start_without_token_welcomes(self, router, telegram):
        assert handle(router, message_update(10, "/start", first_name="Ana")) == "welcome"
        assert "Hello, Ana!" in telegram.last["text"]

    def test_start_when_already_linked_shows_status(self, router, store, telegram):
        link_chat(router, store)
        put_token(store, "OTHER", {"userId": "p99"})

        assert handle(router, message_update(10, "/start OTHER")) == "status"
        assert store.get(KEYS.chat(10)) == "p42"

    def test_start_with_invalid_token(self, router, telegram):
        assert handle(router, message_update(10, "/start NOPE")) == "token_invalid"
        assert "Invalid or Expired Token" in telegram.last["text"]

    def test_command_word_must_match_exactly(self, router, telegram):
        assert handle(router, message_update(10, "/startle")) == "ignored"
        assert telegram.sent == []

    @pytest.mark.parametrize("text", ["/link", "/link A B"])
    def test_link_requires_exactly_one_argument(self, router, telegram, text):
        assert handle(router, message_update(10, text)) == "malformed_command"
        assert telegram.last["text"] == "⚠️ Usage: `/link <token>`"

    def test_disconnect(self, router, store, telegram):
        link_chat(router, store)

        assert handle(router, message_update(10, "/disconnect")) == "disconnected"
        assert store.get(KEYS.chat(10)) is None
        assert store.get(KEYS.account("p42")) is None

    def test_disconnect_when_not_linked(self, router, telegram):
        assert handle(router, message_update(10, "/disconnect")) == "not_connected"
        assert telegram.last["text"] == "⚠️ You are not connected."

    def test_status_when_not_linked(self, router, telegram):
        assert handle(router, message_update(10, "/status")) == "not_linked"

    def test_help(self, router, telegram):
        assert handle(router, message_update(10, "/help")) == "help"
        assert "/reply <Msg>" in telegram.last["text"]

    def test_reply_without_context(self, router, store, telegram):
        link_chat(router, store)
        assert handle(router, message_update(10, "/reply hi there")) == "no_reply_context"
        assert "No active conversation" in telegram.last["text"]

    def test_reply_without_message(self, router, telegram):
        assert handle(router, message_update(10, "/reply")) == "malformed_command"

    def test_reply_uses_last_pm_sender(self, router, store, telegram):
        link_chat(router, store)
        store.set("last_pm_sender:10", "Bob", ttl_s=300)

        assert handle(router, message_update(10, "/reply see you soon")) == "queued"
        assert store.lrange(KEYS.pending("p42")) == ['{"to":"Bob","content":"see you soon"}']
        assert telegram.last["text"].startswith("📤 **Message Sent**")

    def test_guild_uses_last_guild_sender(self, router, store, telegram):
        link_chat(router, store)
        store.set("last_guild_sender:10", "Dave", ttl_s=300)

        assert handle(router, message_update(10, "/guild on my way")) == "queued"
        assert store.lrange(KEYS.pending("p42")) == ['{"content":"on my way"}']

    def test_reply_when_not_linked(self, router, store, telegram):
        store.set("last_pm_sender:10", "Bob", ttl_s=300)
        assert handle(router, message_update(10, "/reply hi")) == "not_linked"
        assert store.lrange(KEYS.pending("p42")) == []


class TestReplyFlow:
    def dispatch(self, container, text: str) -> None:
        container[NotifyService].dispatch(NotificationRequestDTO.model_validate({"userId": "p42", "text": text}))

    def test_button_then_text_queues_reply(self, container, router, store, telegram):
        link_chat(router, store)
        self.dispatch(container, "**New Private Message**\nFrom: Bob\nhi")
        notification = telegram.last
        payload = notification["keyboard"]["inline_keyboard"][0][0]["callback_data"]

        assert handle(router, callback_update(10, payload, message_id=notification["message_id"])) == "reply_session_active"
        assert telegram.answered == ["cb-1"]
        assert telegram.last["force_reply"] is True
        assert "Replying to Bob" in telegram.last["text"]

        assert handle(router, message_update(10, "hello back")) == "queued"
        assert store.lrange(KEYS.pending("p42")) == ['{"to":"Bob","content":"hello back"}']
        assert store.get(KEYS.active_reply(10)) is None
        assert telegram.edits == [{
            "chat_id": 10,
            "message_id": notification["message_id"],
            "keyboard": {"inline_keyboard": [[{"text": "✅ Replied", "callback_data": "noop"}]]},
        }]

    def test_guild_button_then_text(self, container, router, store, telegram):
        link_chat(router, store)
        self.dispatch(container, "**New Guild Message**\nFrom: Dave\nraid at 8")
        payload = telegram.last["keyboard"]["inline_keyboard"][0][0]["callback_data"]

        handle(router, callback_update(10, payload))
        assert handle(router, message_update(10, "count me in")) == "queued"
        assert store.lrange(KEYS.pending("p42")) == ['{"content":"count me in"}']

    def test_expired_permit(self, router, store, telegram):
        assert handle(router, callback_update(10, "reply_context:99")) == "reply_expired"
        assert "Reply Window Expired" in telegram.last["text"]
        assert store.get(KEYS.active_reply(10)) is None

    def test_permit_expires_after_window(self, container, router, store, clock, telegram):
        link_chat(router, store)
        self.dispatch(container, "**New Private Message**\nFrom: Bob\nhi")
        payload = telegram.last["keyboard"]["inline_keyboard"][0][0]["callback_data"]

        clock.advance(301)

        assert handle(router, callback_update(10, payload)) == "reply_expired"
        assert store.get(KEYS.active_reply(10)) is None

    def test_button_pressed_twice(self, container, router, store, telegram):
        link_chat(router, store)
        self.dispatch(container, "**New Private Message**\nFrom: Bob\nhi")
        payload = telegram.last["keyboard"]["inline_keyboard"][0][0]["callback_data"]

        assert handle(router, callback_update(10, payload)) == "reply_session_active"
        assert handle(router, callback_update(10, payload)) == "reply_expired"

    def test_free_text_without_session_is_ignored(self, router, store, telegram):
        link_chat(router, store)
        sent_before = len(telegram.sent)

        assert handle(router, message_update(10, "just chatting")) == "ignored"
        assert len(telegram.sent) == sent_before
        assert store.lrange(KEYS.pending("p42")) == []

    def test_blank_text_keeps_session(self, container, router, store, telegram):
        link_chat(router, store)
        self.dispatch(container, "**New Private Message**\nFrom: Bob\nhi")
        payload = telegram.last["keyboard"]["inline_keyboard"][0][0]["callback_data"]
        handle(router, callback_update(10, payload))

        assert handle(router, message_update(10, "\x00\x07 ")) == "ignored"
        assert store.get(KEYS.active_reply(10)) is not None
        assert handle(router, message_update(10, "hello back")) == "queued"
        assert store.lrange(KEYS.pending("p42")) == ['{"to":"Bob","content":"hello back"}']

    def test_mark_replied_failure_is_swallowed(self, container, router, store, telegram):
        link_chat(router, store)
        self.dispatch(container, "**New Private Message**\nFrom: Bob\nhi")
        payload = telegram.last["keyboard"]["inline_keyboard"][0][0]["callback_data"]
        handle(router, callback_update(10, payload))
        telegram.fail_edits = True

        assert handle(router, message_update(10, "hello back")) == "queued"


class TestCallbacks:
    def test_status_button(self, router, store, telegram):
        link_chat(router, store)
        assert handle(router, callback_update(10, "status")) == "status"

    def test_help_button(self, router, telegram):
        assert handle(router, callback_update(10, "help")) == "help"

    def test_disconnect_button(self, router, store, telegram):
        link_chat(router, store)
        assert handle(router, callback_update(10, "disconnect")) == "disconnected"

    @pytest.mark.parametrize("data", ["noop", "something-else", "reply_context:"])
    def test_unrecognized_payload_is_acknowledged_silently(self, router, telegram, data):
        assert handle(router, callback_update(10, data)) == "ignored"
        assert telegram.answered == ["cb-1"]
        assert telegram.sent == []


def test_other_update_shapes_are_ignored(router, telegram):
    assert handle(router, {"update_id": 5, "edited_message": {"message_id": 1}}) == "ignored"
    assert telegram.sent == []


def test_store_outage_warns_user_and_propagates(router, store, telegram, monkeypatch):
    def boom(key):
        raise StoreUnavailable("redis get failed")

    monkeypatch.setattr(store, "get", boom)

    with pytest.raises(StoreUnavailable):
        handle(router, message_update(10, "/status"))
    assert telegram.last["text"] == "⚠️ System Error. Please try again."


def _fresh(container, router, store):
    pass


def _linked(container, router, store):
    link_chat(router, store)


def _with_token(container, router, store):
    put_token(store, "TOK", {"userId": "p42"})


def _with_pm_sender(container, router, store):
    link_chat(router, store)
    store.set("last_pm_sender:10", "Bob", ttl_s=300)


def _with_guild_sender(container, router, store):
    link_chat(router, store)
    store.set("last_guild_sender:10", "Dave", ttl_s=300)


def _with_notification(container, router, store):
    link_chat(router, store)
    container[NotifyService].dispatch(
        NotificationRequestDTO.model_validate({"userId": "p42", "text": "**New Private Message**\nFrom: Bob\nhi"})
    )


def _with_session(container, router, store):
    _with_notification(container, router, store)
    handle(router, callback_update(10, router.telegram.last["keyboard"]["inline_keyboard"][0][0]["callback_data"]))


def _text(value):
    return lambda telegram: message_update(10, value)


def _button(data):
    return lambda telegram: callback_update(10, data)


def _reply_button(telegram):
    return callback_update(10, telegram.last["keyboard"]["inline_keyboard"][0][0]["callback_data"])


@pytest.mark.parametrize("setup, update, outcome", [
    (_with_token, _text("/link TOK"), "linked"),
    (_fresh, _text("/link NOPE"), "token_invalid"),
    (_fresh, _text("/link"), "malformed_command"),
    (_fresh, _text("/start"), "welcome"),
    (_with_token, _text("/start TOK"), "linked"),
    (_linked, _text("/start"), "status"),
    (_linked, _text("/status"), "status"),
    (_fresh, _text("/status"), "not_linked"),
    (_fresh, _text("/help"), "help"),
    (_linked, _text("/disconnect"), "disconnected"),
    (_fresh, _text("/disconnect"), "not_connected"),
    (_with_pm_sender, _text("/reply see you"), "queued"),
    (_linked, _text("/reply see you"), "no_reply_context"),
    (_with_guild_sender, _text("/guild on my way"), "queued"),
    (_fresh, _button("help"), "help"),
    (_linked, _button("status"), "status"),
    (_linked, _button("disconnect"), "disconnected"),
    (_with_notification, _reply_button, "reply_session_active"),
    (_fresh, _button("reply_context:99"), "reply_expired"),
    (_with_session, _text("hello back"), "queued"),
])
def test_each_branch_sends_exactly_one_message(container, router, store, telegram, setup, update, outcome):
    setup(container, router, store)
    raw = update(telegram)
    sent_before = len(telegram.sent)

    assert handle(router, raw) == outcome
    assert len(telegram.sent) == sent_before + 1
