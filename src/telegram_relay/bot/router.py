"""Roteador de updates do Telegram (um update por vez).

Prioridade: botão (callback_query) → comando (/...) → texto livre com sessão
de resposta ativa → demais formatos ignorados. Cada ramo sem erro de
store/entrega responde com exatamente uma mensagem visível (a edição
"✅ Replied" é cosmética).
"""
from __future__ import annotations
from typing import Callable, Dict
from ..core import keyboards
from ..core.errors import DeliveryFailed, MalformedCommand, PermitExpired, StoreUnavailable, TokenInvalidOrExpired
from ..core.guardrails import sanitize_text
from ..core.logging import get_logger
from ..core.messages import MessageTemplates
from ..domain.services.link_service import LinkService
from ..domain.services.outbox_service import OutboxService
from ..domain.services.reply_service import ReplyService
from ..ports.interfaces import CallbackQueryDTO, ChatPlatform, MessageDTO, UpdateDTO
from ..repo.models import ReplyKind

log = get_logger()

def parse_command(text: str) -> tuple[str, str]:
    """Separa `/cmd@Bot args` em ("cmd", "args")."""
    head, _, rest = text[1:].partition(" ")
    if "\n" in head:
        head, _, extra = head.partition("\n")
        rest = f"{extra} {rest}".strip()
    word = head.split("@", 1)[0].strip().lower()
    return word, rest.strip()

class Router:
    def __init__(
        self,
        telegram: ChatPlatform,
        links: LinkService,
        replies: ReplyService,
        outbox: OutboxService,
        templates: MessageTemplates,
    ):
        self.telegram = telegram
        self.links = links
        self.replies = replies
        self.outbox = outbox
        self.t = templates
        self._commands: Dict[str, Callable[[MessageDTO, str], str]] = {
            "start": self._cmd_start,
            "link": self._cmd_link,
            "disconnect": lambda msg, _: self._disconnect(msg.chat.id),
            "status": lambda msg, _: self._show_status(msg.chat.id),
            "help": lambda msg, _: self._show_help(msg.chat.id),
            "reply": lambda msg, args: self._direct_reply(msg.chat.id, ReplyKind.PM, args),
            "guild": lambda msg, args: self._direct_reply(msg.chat.id, ReplyKind.GUILD, args),
        }
        self._callbacks: Dict[str, Callable[[int], str]] = {
            keyboards.CB_HELP: self._show_help,
            keyboards.CB_STATUS: self._show_status,
            keyboards.CB_DISCONNECT: self._disconnect,
        }

    # ---------- Entrada ----------
    def handle(self, update: UpdateDTO) -> str:
        """Processa um update e devolve um rótulo do desfecho (para log/testes)."""
        chat_id = self._chat_of(update)
        try:
            if update.callback_query is not None:
                return self._on_callback(update.callback_query)
            msg = update.message
            if msg is None or not msg.text:
                return "ignored"
            if msg.text.startswith("/"):
                return self._on_command(msg)
            return self._on_text(msg)
        except StoreUnavailable:
            if chat_id is not None:
                # melhor esforço: avisar o usuário antes de propagar
                self.telegram.send_message(chat_id, self.t.render("system_error"))
            raise

    @staticmethod
    def _chat_of(update: UpdateDTO) -> int | None:
        if update.callback_query is not None and update.callback_query.message is not None:
            return update.callback_query.message.chat.id
        if update.message is not None:
            return update.message.chat.id
        return None

    def _send(self, chat_id: int, text: str, keyboard: dict | None = None, force_reply: bool = False) -> None:
        res = self.telegram.send_message(chat_id, text, keyboard=keyboard, force_reply=force_reply)
        if not res.ok:
            raise DeliveryFailed(res.error_detail or "telegram delivery failed", chat_id=chat_id, error_code=res.error_code)

    # ---------- Botões ----------
    def _on_callback(self, query: CallbackQueryDTO) -> str:
        ack = self.telegram.answer_callback(query.id)
        if not ack.ok:
            log.warning("callback_ack_failed", callback_query_id=query.id, error_code=ack.error_code)
        if query.message is None:
            return "ignored"
        chat_id = query.message.chat.id

        context_id = keyboards.parse_reply_context(query.data)
        if context_id:
            try:
                session = self.replies.activate_session(chat_id, context_id, query.message.message_id)
            except PermitExpired:
                self._send(chat_id, self.t.render("reply_expired"))
                return "reply_expired"
            self._send(chat_id, self.t.render("reply_prompt", target=session.target), force_reply=True)
            return "reply_session_active"

        handler = self._callbacks.get(query.data or "")
        if handler is None:
            log.debug("callback_ignored", data=query.data)
            return "ignored"
        return handler(chat_id)

    # ---------- Comandos ----------
    def _on_command(self, msg: MessageDTO) -> str:
        word, args = parse_command(msg.text or "")
        handler = self._commands.get(word)
        if handler is None:
            log.debug("command_unknown", chat_id=msg.chat.id, command=word)
            return "ignored"
        log.info("command_in", chat_id=msg.chat.id, command=word)
        try:
            return handler(msg, args)
        except MalformedCommand as e:
            self._send(msg.chat.id, self.t.render("usage", usage=e.usage))
            return "malformed_command"

    def _cmd_start(self, msg: MessageDTO, args: str) -> str:
        chat_id = msg.chat.id
        if self.links.account_for_chat(chat_id):
            return self._show_status(chat_id)
        if args:
            return self._link(chat_id, args)
        first_name = msg.from_user.first_name if msg.from_user else None
        self._send(chat_id, self.t.welcome(first_name), keyboards.main_menu())
        return "welcome"

    def _cmd_link(self, msg: MessageDTO, args: str) -> str:
        parts = args.split()
        if len(parts) != 1:
            raise MalformedCommand("link", "/link <token>")
        return self._link(msg.chat.id, parts[0])

    def _direct_reply(self, chat_id: int, kind: ReplyKind, args: str) -> str:
        command = "reply" if kind == ReplyKind.PM else "guild"
        content = sanitize_text(args)
        if not content:
            raise MalformedCommand(command, f"/{command} <message>")
        target = self.replies.last_sender(chat_id, kind)
        if not target:
            self._send(chat_id, self.t.render("no_reply_context"))
            return "no_reply_context"
        return self._queue(chat_id, kind, target, content)

    # ---------- Texto livre ----------
    def _on_text(self, msg: MessageDTO) -> str:
        chat_id = msg.chat.id
        content = sanitize_text(msg.text or "")
        if not content:
            return "ignored"
        session = self.replies.consume_session(chat_id)
        if session is None:
            log.debug("text_ignored_no_session", chat_id=chat_id)
            return "ignored"
        outcome = self._queue(chat_id, session.kind, session.target, content)
        if outcome == "queued" and session.original_message_id is not None:
            self._mark_replied(chat_id, session.original_message_id)
        return outcome

    def _mark_replied(self, chat_id: int, message_id: int) -> None:
        res = self.telegram.edit_message_buttons(chat_id, message_id, keyboards.replied_marker())
        if not res.ok:
            log.info("mark_replied_failed", chat_id=chat_id, message_id=message_id, error_code=res.error_code)

    # ---------- Ações ----------
    def _link(self, chat_id: int, token: str) -> str:
        try:
            linked = self.links.resolve_link(chat_id, token)
        except TokenInvalidOrExpired:
            self._send(chat_id, self.t.render("token_invalid"))
            return "token_invalid"
        self._send(chat_id, self.t.linked(linked.account_id, linked.server_id), keyboards.linked_menu())
        return "linked"

    def _disconnect(self, chat_id: int) -> str:
        if self.links.disconnect(chat_id):
            self._send(chat_id, self.t.render("disconnected"), keyboards.main_menu())
            return "disconnected"
        self._send(chat_id, self.t.render("not_connected"))
        return "not_connected"

    def _show_status(self, chat_id: int) -> str:
        account_id = self.links.account_for_chat(chat_id)
        if account_id:
            self._send(chat_id, self.t.status(account_id), keyboards.linked_menu())
            return "status"
        self._send(chat_id, self.t.render("not_linked"), keyboards.main_menu())
        return "not_linked"

    def _show_help(self, chat_id: int) -> str:
        self._send(chat_id, self.t.render("help"))
        return "help"

    def _queue(self, chat_id: int, kind: ReplyKind, target: str, content: str) -> str:
        account_id = self.links.account_for_chat(chat_id)
        if not account_id:
            self._send(chat_id, self.t.render("not_linked"))
            return "not_linked"
        if kind == ReplyKind.PM:
            self.outbox.queue_reply(account_id, target, content)
            self._send(chat_id, self.t.render("message_sent", to=target, content=content))
        else:
            self.outbox.queue_guild_message(account_id, content)
            self._send(chat_id, self.t.render("guild_sent", content=content))
        return "queued"
