"""Serviço de vínculo conta do jogo ↔ chat do Telegram.

- O token é consumido com GETDEL: o primeiro a resgatar vence, os demais
  recebem TokenInvalidOrExpired.
- As duas direções do vínculo são gravadas na mesma transação; pares antigos
  (chat ou conta já vinculados a outro lado) são desfeitos juntos.
"""
from __future__ import annotations
from dataclasses import dataclass
from ...core.errors import TokenInvalidOrExpired
from ...core.logging import get_logger
from ...ports.interfaces import KeyValueStore
from ...repo.keys import KeySchema
from ...repo.models import decode_link_token

log = get_logger()

@dataclass(frozen=True)
class LinkedAccount:
    chat_id: int
    account_id: str
    server_id: str | None = None

class LinkService:
    def __init__(self, store: KeyValueStore, keys: KeySchema):
        self.store = store
        self.keys = keys

    def account_for_chat(self, chat_id: int) -> str | None:
        return self.store.get(self.keys.chat(chat_id))

    def chat_for_account(self, account_id: str) -> str | None:
        return self.store.get(self.keys.account(account_id))

    def resolve_link(self, chat_id: int, token: str) -> LinkedAccount:
        """Resgata o token e grava o vínculo bidirecional.

        :raises TokenInvalidOrExpired: token ausente, já usado ou ilegível.
        """
        token = (token or "").strip()
        if not token:
            raise TokenInvalidOrExpired("empty token")
        raw = self.store.getdel(self.keys.token(token))
        if raw is None:
            log.info("link_token_invalid", chat_id=chat_id)
            raise TokenInvalidOrExpired("token not found")
        try:
            value = decode_link_token(raw)
        except ValueError as e:
            log.warning("link_token_unreadable", chat_id=chat_id, error=str(e))
            raise TokenInvalidOrExpired("token value unreadable") from e
        if value.legacy:
            log.warning("link_token_legacy_format", chat_id=chat_id)

        account_id = value.account_id
        stale: list[str] = []
        previous_account = self.account_for_chat(chat_id)
        if previous_account and previous_account != account_id:
            stale.append(self.keys.account(previous_account))
        previous_chat = self.chat_for_account(account_id)
        if previous_chat and previous_chat != str(chat_id):
            stale.append(self.keys.chat(previous_chat))

        self.store.set_many(
            {self.keys.chat(chat_id): account_id, self.keys.account(account_id): str(chat_id)},
            delete=tuple(stale),
        )
        metadata = {}
        if value.server_id:
            metadata["server"] = value.server_id
        if value.language:
            metadata["language"] = value.language
        self.store.hset(self.keys.metadata(account_id), metadata)
        log.info("link_success", chat_id=chat_id, account_id=account_id, server_id=value.server_id, replaced=len(stale))
        return LinkedAccount(chat_id=chat_id, account_id=account_id, server_id=value.server_id)

    def disconnect(self, chat_id: int) -> bool:
        """Desfaz o vínculo. False (sem erro) se o chat não estava vinculado."""
        account_id = self.account_for_chat(chat_id)
        if not account_id:
            return False
        keys = [self.keys.chat(chat_id)]
        # só remove a direção reversa se ela ainda aponta para este chat
        if self.chat_for_account(account_id) == str(chat_id):
            keys.append(self.keys.account(account_id))
        self.store.delete(*keys)
        log.info("link_disconnected", chat_id=chat_id, account_id=account_id)
        return True
