"""API Flask: webhook do Telegram e entrada de notificações do servidor do jogo."""
from __future__ import annotations
import hmac
from flask import Flask, request, jsonify
from kink import di
from pydantic import ValidationError
from ..core.di import bootstrap_di
from ..core.errors import InvalidRequest, RelayError
from ..core.logging import set_trace_id, get_logger
from ..core.settings import Settings
from ..bot.router import Router
from ..connectors.telegram.bot_api_adapter import TelegramBotAdapter
from ..domain.services.notify_service import NotifyService
from ..ports.interfaces import NotificationRequestDTO

log = get_logger()

def create_app() -> Flask:
    """Cria a app Flask; espera o container já montado por `bootstrap_di()`."""
    app = Flask(__name__)

    @app.post("/webhook/telegram")
    def telegram_webhook():
        """Recebe um update do Telegram. Sempre 200 (exceto segredo inválido) para evitar reenvios."""
        set_trace_id(request.headers.get("X-Trace-Id"))
        adapter: TelegramBotAdapter = di[TelegramBotAdapter]
        if not adapter.verify_secret(request.headers.get("X-Telegram-Bot-Api-Secret-Token")):
            return "forbidden", 403

        update = adapter.normalize_incoming(request.get_json(silent=True))
        if update is None:
            return jsonify({"ok": True, "outcome": "ignored"})
        log.info("webhook_in", update_id=update.update_id, callback=update.callback_query is not None)
        try:
            outcome = di[Router].handle(update)
        except RelayError as e:
            log.error("webhook_failed", update_id=update.update_id, code=e.code, error=e.message)
            return jsonify({"ok": False, "error": e.code})
        except Exception:
            log.exception("webhook_crashed", update_id=update.update_id)
            return jsonify({"ok": False, "error": "E_INTERNAL"})
        log.info("webhook_done", update_id=update.update_id, outcome=outcome)
        return jsonify({"ok": True, "outcome": outcome})

    @app.post("/notify")
    def notify():
        """Notificação do servidor do jogo: {userId, text, chatId?, kind?, sender?}."""
        set_trace_id(request.headers.get("X-Trace-Id"))
        secret = di[Settings].notify_secret
        if secret and not hmac.compare_digest(secret.encode(), (request.headers.get("X-Bot-Secret") or "").encode()):
            return jsonify({"error": "Unauthorized"}), 401

        body = request.get_json(silent=True) or {}
        if not isinstance(body, dict) or not body.get("userId") or not body.get("text"):
            return jsonify({"error": "Missing userId or text"}), 400
        try:
            req = NotificationRequestDTO.model_validate(body)
        except ValidationError as e:
            err = InvalidRequest("Invalid request")
            return jsonify({**err.to_dict(), "details": e.errors(include_url=False, include_context=False)}), err.status_code

        log.info("notify_in", account_id=req.user_id, explicit_chat=req.chat_id is not None)
        try:
            di[NotifyService].dispatch(req)
        except RelayError as e:
            log.warning("notify_rejected", account_id=req.user_id, code=e.code, error=e.message)
            return jsonify(e.to_dict()), e.status_code
        return jsonify({"success": True})

    return app

def main() -> None:
    """Sobe o servidor de desenvolvimento do Flask com as configurações do env."""
    bootstrap_di()
    s: Settings = di[Settings]
    try:
        di["store"].ping()
        log.info("redis_connected")
    except RelayError as e:
        log.warning("redis_unreachable_at_startup", error=e.message)
    create_app().run(host=s.host, port=s.port, debug=s.flask_debug)

if __name__ == "__main__":
    main()
