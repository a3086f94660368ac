"""Despacho de notificações do servidor do jogo para o chat vinculado.

- Destino: chatId explícito > lookup conta→chat; sem destino → NotLinked.
- Cabeçalho "Notification" só quando o texto não traz trecho em `**negrito**`.
- PM/guilda: `kind`/`sender` explícitos ou, na falta, leitura do texto
  ("Private Message"/"Guild Message" + "From: <nome>"). Classificada, a
  notificação ganha permit e botão de resposta.
- Uma única chamada ao Telegram; falha vira DeliveryFailed, sem retry.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from ...core import keyboards
from ...core.errors import DeliveryFailed, NotLinked
from ...core.guardrails import has_bold_span
from ...core.logging import get_logger
from ...core.messages import MessageTemplates
from ...ports.interfaces import ChatPlatform, DeliveryDTO, NotificationRequestDTO
from ...repo.models import ReplyKind
from .link_service import LinkService
from .reply_service import ReplyService

log = get_logger()

# aceita quebra de linha real e o escape literal "\n"
_NL = r"(?:\\n|\n)"
PM_FROM = re.compile(r"New Private Message\*\*" + _NL + r"From: (.+?)" + _NL)
GUILD_FROM = re.compile(r"New Guild Message\*\*" + _NL + r"From: (.+?)" + _NL)
SIMPLE_FROM = re.compile(r"From: (.+?)(?:\\n|\n|$)")

@dataclass(frozen=True)
class Classification:
    kind: ReplyKind
    sender: str

def _sender_from_text(text: str, specific: re.Pattern) -> str | None:
    m = specific.search(text) or SIMPLE_FROM.search(text)
    if not m:
        return None
    sender = m.group(1).strip()
    return sender or None

def classify(text: str, kind: ReplyKind | None = None, sender: str | None = None) -> Classification | None:
    """Classifica a notificação como PM/guilda; None se não aceitar resposta."""
    sender = (sender or "").strip() or None
    if kind == ReplyKind.PM:
        sender = sender or _sender_from_text(text, PM_FROM)
        return Classification(ReplyKind.PM, sender) if sender else None
    if kind == ReplyKind.GUILD:
        return Classification(ReplyKind.GUILD, sender or _sender_from_text(text, GUILD_FROM) or "Guild")

    if "Private Message" in text:
        found = sender or _sender_from_text(text, PM_FROM)
        if found:
            return Classification(ReplyKind.PM, found)
    if "Guild Message" in text:
        return Classification(ReplyKind.GUILD, sender or _sender_from_text(text, GUILD_FROM) or "Guild")
    return None

class NotifyService:
    def __init__(self, links: LinkService, replies: ReplyService, telegram: ChatPlatform, templates: MessageTemplates):
        self.links = links
        self.replies = replies
        self.telegram = telegram
        self.templates = templates

    def resolve_chat(self, req: NotificationRequestDTO) -> int:
        if req.chat_id is not None:
            return req.chat_id
        chat_id = self.links.chat_for_account(req.user_id)
        if not chat_id:
            raise NotLinked("User not linked", account_id=req.user_id)
        return int(chat_id)

    def dispatch(self, req: NotificationRequestDTO) -> DeliveryDTO:
        """Entrega a notificação; anexa botão de resposta quando cabível.

        :raises NotLinked: conta sem chat vinculado e sem chatId explícito.
        :raises DeliveryFailed: Telegram rejeitou ou erro de rede.
        """
        chat_id = self.resolve_chat(req)
        text = req.text if has_bold_span(req.text) else self.templates.notification(req.text)

        keyboard = None
        found = classify(req.text, req.kind, req.sender)
        if found:
            context_id = self.replies.issue_permit(chat_id, found.sender, found.kind)
            keyboard = keyboards.reply_button(
                context_id,
                guild=found.kind == ReplyKind.GUILD,
                window_min=self.templates.window_min,
            )

        res = self.telegram.send_message(chat_id, text, keyboard=keyboard)
        if not res.ok:
            log.error("notify_failed", account_id=req.user_id, chat_id=chat_id, error_code=res.error_code)
            raise DeliveryFailed(res.error_detail or "telegram delivery failed", error_code=res.error_code)
        log.info("notify_sent", account_id=req.user_id, chat_id=chat_id, kind=found.kind.value if found else None)
        return res
