"""Janela de resposta por chat: permits por notificação e sessão ativa única.

Estados por chat: Idle → PermitIssued → SessionActive → Idle.
Expiração fica a cargo do TTL nativo do store; não há varredura.
"""
from __future__ import annotations
import time
from typing import Callable
from ...core.errors import PermitExpired
from ...core.logging import get_logger
from ...ports.interfaces import KeyValueStore
from ...repo.keys import KeySchema
from ...repo.models import ReplyKind, ReplyPermit, ReplySession

log = get_logger()

class ReplyService:
    def __init__(self, store: KeyValueStore, window_s: int = 300, clock_ns: Callable[[], int] = time.time_ns):
        self.store = store
        self.window_s = window_s
        self._clock_ns = clock_ns

    def issue_permit(self, chat_id: int, sender: str, kind: ReplyKind) -> str:
        """Emite permit para responder a uma notificação e retorna o context id."""
        context_id = str(self._clock_ns())
        permit = ReplyPermit(target=sender, kind=kind)
        self.store.set(KeySchema.last_sender(chat_id, kind), sender, ttl_s=self.window_s)
        self.store.set(KeySchema.reply_permit(chat_id, context_id), permit.dump_value(), ttl_s=self.window_s)
        log.info("reply_permit_issued", chat_id=chat_id, context_id=context_id, kind=kind.value)
        return context_id

    def activate_session(self, chat_id: int, context_id: str, anchor_message_id: int | None) -> ReplySession:
        """Consome o permit e abre a sessão ativa (substitui qualquer anterior).

        :raises PermitExpired: permit inexistente, expirado ou já usado.
        """
        raw = self.store.getdel(KeySchema.reply_permit(chat_id, context_id))
        if raw is None:
            log.info("reply_permit_expired", chat_id=chat_id, context_id=context_id)
            raise PermitExpired(context_id=context_id)
        permit = ReplyPermit.model_validate_json(raw)
        session = ReplySession(
            target=permit.target,
            kind=permit.kind,
            original_message_id=anchor_message_id,
            context_id=context_id,
        )
        self.store.set(KeySchema.active_reply(chat_id), session.dump_value(), ttl_s=self.window_s)
        log.info("reply_session_active", chat_id=chat_id, context_id=context_id, kind=permit.kind.value)
        return session

    def consume_session(self, chat_id: int) -> ReplySession | None:
        """Lê e apaga a sessão ativa; None se não houver (ou outro consumidor venceu)."""
        raw = self.store.getdel(KeySchema.active_reply(chat_id))
        if raw is None:
            return None
        session = ReplySession.model_validate_json(raw)
        if session.context_id:
            self.store.delete(KeySchema.reply_permit(chat_id, session.context_id))
        log.info("reply_session_consumed", chat_id=chat_id, kind=session.kind.value)
        return session

    def last_sender(self, chat_id: int, kind: ReplyKind) -> str | None:
        return self.store.get(KeySchema.last_sender(chat_id, kind))
