"""Dublês e construtores de updates compartilhados pelos testes."""
from __future__ import annotations
from typing import Mapping

from telegram_relay.ports.interfaces import DeliveryDTO


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryStore:
    """Dublê da porta KeyValueStore; TTLs avaliados contra o FakeClock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.data: dict = {}
        self.expiry: dict[str, float] = {}

    def _alive(self, key: str) -> bool:
        exp = self.expiry.get(key)
        if exp is not None and self.clock.now >= exp:
            self.data.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.data

    def _expire(self, key: str, ttl_s: int | None) -> None:
        if ttl_s is None:
            self.expiry.pop(key, None)
        else:
            self.expiry[key] = self.clock.now + ttl_s

    def ttl(self, key: str) -> float | None:
        if not self._alive(key) or key not in self.expiry:
            return None
        return self.expiry[key] - self.clock.now

    def get(self, key: str) -> str | None:
        return self.data[key] if self._alive(key) else None

    def set(self, key: str, value: str, ttl_s: int | None = None) -> None:
        self.data[key] = value
        self._expire(key, ttl_s)

    def getdel(self, key: str) -> str | None:
        value = self.get(key)
        self.data.pop(key, None)
        self.expiry.pop(key, None)
        return value

    def delete(self, *keys: str) -> int:
        removed = 0
        for k in keys:
            if self._alive(k):
                removed += 1
            self.data.pop(k, None)
            self.expiry.pop(k, None)
        return removed

    def rpush(self, key: str, value: str, ttl_s: int | None = None) -> int:
        if not self._alive(key):
            self.data[key] = []
        self.data[key].append(value)
        if ttl_s is not None:
            self._expire(key, ttl_s)
        return len(self.data[key])

    def lrange(self, key: str) -> list[str]:
        return list(self.data[key]) if self._alive(key) else []

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        if not mapping:
            return
        if not self._alive(key):
            self.data[key] = {}
        self.data[key].update(mapping)

    def hgetall(self, key: str) -> dict:
        return dict(self.data[key]) if self._alive(key) else {}

    def set_many(self, values: Mapping[str, str], delete: tuple[str, ...] = ()) -> None:
        self.delete(*delete)
        for k, v in values.items():
            self.set(k, v)


class FakeTelegram:
    """Dublê da porta ChatPlatform que grava as chamadas."""

    def __init__(self):
        self.sent: list[dict] = []
        self.answered: list[str] = []
        self.edits: list[dict] = []
        self.fail_sends = False
        self.fail_edits = False
        self._next_id = 500

    def send_message(self, chat_id, text, keyboard=None, force_reply=False) -> DeliveryDTO:
        if self.fail_sends:
            return DeliveryDTO(ok=False, error_code="400", error_detail="Bad Request: chat not found")
        self._next_id += 1
        self.sent.append({"chat_id": chat_id, "text": text, "keyboard": keyboard, "force_reply": force_reply, "message_id": self._next_id})
        return DeliveryDTO(ok=True, message_id=self._next_id)

    def answer_callback(self, callback_query_id, text=None) -> DeliveryDTO:
        self.answered.append(callback_query_id)
        return DeliveryDTO(ok=True)

    def edit_message_buttons(self, chat_id, message_id, keyboard) -> DeliveryDTO:
        if self.fail_edits:
            return DeliveryDTO(ok=False, error_code="400", error_detail="message is not modified")
        self.edits.append({"chat_id": chat_id, "message_id": message_id, "keyboard": keyboard})
        return DeliveryDTO(ok=True)

    @property
    def last(self) -> dict:
        return self.sent[-1]


def message_update(chat_id: int, text: str, message_id: int = 1, first_name: str = "Ana") -> dict:
    return {
        "update_id": 1,
        "message": {
            "message_id": message_id,
            "chat": {"id": chat_id, "type": "private"},
            "from": {"id": chat_id, "is_bot": False, "first_name": first_name},
            "text": text,
        },
    }


def callback_update(chat_id: int, data: str, message_id: int = 77, query_id: str = "cb-1") -> dict:
    return {
        "update_id": 2,
        "callback_query": {
            "id": query_id,
            "from": {"id": chat_id, "is_bot": False, "first_name": "Ana"},
            "data": data,
            "message": {"message_id": message_id, "chat": {"id": chat_id, "type": "private"}, "text": "..."},
        },
    }
