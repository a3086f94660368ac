"""Adapter da Telegram Bot API para envio/recebimento."""
from __future__ import annotations
import hmac
import httpx
from kink import di
from pydantic import ValidationError
from ...core.settings import Settings
from ...core.logging import get_logger
from ...ports.interfaces import UpdateDTO, DeliveryDTO

log = get_logger()

class TelegramBotAdapter:
    """Adapter para a Bot API (sendMessage, answerCallbackQuery, editMessageReplyMarkup)."""
    def __init__(self, settings: Settings | None = None, transport: httpx.BaseTransport | None = None):
        self.s = settings or di[Settings]
        self._transport = transport

    # --- Ingress helpers ---
    def verify_secret(self, header_secret: str | None) -> bool:
        """Valida X-Telegram-Bot-Api-Secret-Token quando `webhook_secret` está configurado."""
        if not self.s.webhook_secret:
            return True
        if not header_secret:
            return False
        return hmac.compare_digest(self.s.webhook_secret.encode(), header_secret.encode())

    def normalize_incoming(self, raw: dict | None) -> UpdateDTO | None:
        """Normaliza payload do webhook em UpdateDTO; None se o formato não for reconhecido."""
        if not isinstance(raw, dict):
            return None
        try:
            return UpdateDTO.model_validate(raw)
        except ValidationError as e:
            log.warning("webhook_unrecognized_update", errors=e.error_count())
            return None

    # --- Egress ---
    def _client(self) -> httpx.Client:
        base = f"{self.s.telegram_api_base.rstrip('/')}/bot{self.s.telegram_bot_token}/"
        return httpx.Client(base_url=base, timeout=self.s.telegram_timeout_s, transport=self._transport)

    def call(self, method: str, payload: dict) -> DeliveryDTO:
        """Chama um método da Bot API e padroniza o resultado em DeliveryDTO."""
        try:
            with self._client() as cli:
                r = cli.post(method, json=payload)
        except httpx.HTTPError as e:
            log.error("telegram_network_error", method=method, error=str(e))
            return DeliveryDTO(ok=False, error_code="network", error_detail=str(e))
        j = {}
        if "application/json" in r.headers.get("content-type", ""):
            try:
                j = r.json()
            except ValueError:
                j = {}
        if r.status_code // 100 == 2 and j.get("ok"):
            result = j.get("result")
            message_id = result.get("message_id") if isinstance(result, dict) else None
            return DeliveryDTO(ok=True, message_id=message_id)
        log.error("telegram_api_error", method=method, status=r.status_code, description=j.get("description"))
        return DeliveryDTO(ok=False, error_code=str(j.get("error_code", r.status_code)), error_detail=j.get("description"))

    def send_message(self, chat_id: int, text: str, keyboard: dict | None = None, force_reply: bool = False) -> DeliveryDTO:
        payload: dict = {"chat_id": chat_id, "text": text}
        if self.s.telegram_parse_mode:
            payload["parse_mode"] = self.s.telegram_parse_mode
        if force_reply:
            payload["reply_markup"] = {"force_reply": True}
        elif keyboard:
            payload["reply_markup"] = keyboard
        return self.call("sendMessage", payload)

    def answer_callback(self, callback_query_id: str, text: str | None = None) -> DeliveryDTO:
        payload: dict = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        return self.call("answerCallbackQuery", payload)

    def edit_message_buttons(self, chat_id: int, message_id: int, keyboard: dict) -> DeliveryDTO:
        return self.call("editMessageReplyMarkup", {"chat_id": chat_id, "message_id": message_id, "reply_markup": keyboard})
