"""Esquema de chaves do Redis.

Chaves de conta/fila levam o namespace configurado (`telegram_` por padrão),
que é o contrato de polling do servidor do jogo. Chaves de resposta não têm prefixo.

A chave conta→chat usa o segmento `user` do bot implantado; com
`namespace=""` e `account_segment="account"` as chaves ficam `chat:<id>`,
`account:<id>`, `pending:<id>`.
"""
from __future__ import annotations
from dataclasses import dataclass
from .models import ReplyKind

@dataclass(frozen=True)
class KeySchema:
    namespace: str = "telegram_"
    account_segment: str = "user"

    def token(self, link_id: str) -> str:
        return f"{self.namespace}token:{link_id}"

    def chat(self, chat_id: int | str) -> str:
        return f"{self.namespace}chat:{chat_id}"

    def account(self, account_id: str) -> str:
        return f"{self.namespace}{self.account_segment}:{account_id}"

    def metadata(self, account_id: str) -> str:
        return f"{self.namespace}metadata:{account_id}"

    def pending(self, account_id: str) -> str:
        return f"{self.namespace}pending:{account_id}"

    @staticmethod
    def last_sender(chat_id: int | str, kind: ReplyKind) -> str:
        prefix = "last_pm_sender" if kind == ReplyKind.PM else "last_guild_sender"
        return f"{prefix}:{chat_id}"

    @staticmethod
    def reply_permit(chat_id: int | str, context_id: str) -> str:
        return f"reply_permit:{chat_id}:{context_id}"

    @staticmethod
    def active_reply(chat_id: int | str) -> str:
        return f"active_reply:{chat_id}"
