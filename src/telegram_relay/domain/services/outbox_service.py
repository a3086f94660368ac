"""Fila de respostas do jogador lida (por polling) pelo servidor do jogo.

Lista `pending:<accountId>`: RPUSH de JSON `{"to","content"}` (ou só `{"content"}`
para guilda), TTL de 24h renovado a cada push. Ordem FIFO.
"""
from __future__ import annotations
from ...core.logging import get_logger
from ...ports.interfaces import KeyValueStore
from ...repo.keys import KeySchema
from ...repo.models import PendingEntry

log = get_logger()

class OutboxService:
    def __init__(self, store: KeyValueStore, keys: KeySchema, ttl_s: int = 86400):
        self.store = store
        self.keys = keys
        self.ttl_s = ttl_s

    def _push(self, account_id: str, entry: PendingEntry) -> int:
        size = self.store.rpush(self.keys.pending(account_id), entry.dump_value(), ttl_s=self.ttl_s)
        log.info("outbox_enqueued", account_id=account_id, guild=entry.to is None, queue_size=size)
        return size

    def queue_reply(self, account_id: str, to: str, content: str) -> int:
        """Enfileira mensagem privada para `to`."""
        return self._push(account_id, PendingEntry(to=to, content=content))

    def queue_guild_message(self, account_id: str, content: str) -> int:
        """Enfileira mensagem para o chat da guilda (`to` implícito)."""
        return self._push(account_id, PendingEntry(content=content))
