"""Textos do bot (Markdown do Telegram) renderizados com Jinja2.

- Dados vindos do usuário/jogo passam pelos filtros `md` (fora de entidades)
  ou `plain` (dentro de `**...**` ou crases).
- `window_min` acompanha `Settings.reply_window_s`.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict
from jinja2 import Environment, BaseLoader, StrictUndefined
from .guardrails import escape_markdown

def _plain(value: Any) -> str:
    return str(value if value is not None else "").replace("*", "").replace("`", "")

TEMPLATES: Dict[str, str] = {
    "welcome": """
👋 **Hello, {{ name | plain }}!**

I am your personal **Game Assistant**. 🛡️
I can send you real-time notifications about:
• ⚔️ Battles
• 📩 Private Messages
• 📜 Guild Events

👇 **Connect your account to get started!**
""",
    "help": """
📚 **Bot Commands Help**

/start - Main Menu
/link <token> - Connect Account
/disconnect - Disconnect Account
/status - Connection Status
/reply <Msg> - Reply to last PM ({{ window_min }}m limit)
/guild <Msg> - Reply to last Guild Msg ({{ window_min }}m limit)
""",
    "linked": """
🎉 **Connection Successful!**

👤 **User ID:** `{{ account_id | plain }}`
🌍 **Server:** {{ (server_id or 'Unknown') | md }}

You will now receive notifications here. 🚀
""",
    "not_linked": """
⚠️ **Account Not Linked**

Please go to the game settings, click **"Connect Telegram"**, and use the token provided.
""",
    "status": """
📡 **System Status: ONLINE**

✅ **Connected**
👤 **User ID:** `{{ account_id | plain }}`

All systems operational.
""",
    "no_reply_context": """
⚠️ **No active conversation.**

You can only use /reply or /guild within **{{ window_min }} minutes** of receiving a message.
Wait for a new message to reply.
""",
    "reply_expired": """
⚠️ **Reply Window Expired**

You had {{ window_min }} minutes to reply. Please wait for a new message.
""",
    "token_invalid": "❌ **Invalid or Expired Token.**\nPlease generate a new one in-game.",
    "system_error": "⚠️ System Error. Please try again.",
    "disconnected": "🔌 **Disconnected Successfully.**",
    "not_connected": "⚠️ You are not connected.",
    "reply_prompt": "📝 **Replying to {{ target | plain }}...**\n\nPlease type your message now.",
    "message_sent": "📤 **Message Sent**\nTo: `{{ to | plain }}`\n\"{{ content | md }}\"",
    "guild_sent": "🛡️ **Guild Message Sent**\n\"{{ content | md }}\"",
    "usage": "⚠️ Usage: `{{ usage | plain }}`",
    "notification": "🔔 **Notification**\n\n{{ text }}",
}

@dataclass
class MessageTemplates:
    window_min: int = 5
    env: Environment = field(default_factory=lambda: Environment(
        loader=BaseLoader(),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False,
    ))

    def __post_init__(self) -> None:
        self.env.filters["md"] = escape_markdown
        self.env.filters["plain"] = _plain

    def render(self, template: str, **values: Any) -> str:
        """Renderiza o template `template`; espaços/linhas nas pontas são removidos."""
        compiled = self.env.from_string(TEMPLATES[template])
        return compiled.render(window_min=self.window_min, **values).strip()

    # Atalhos usados com frequência
    def welcome(self, name: str | None) -> str:
        return self.render("welcome", name=name or "there")

    def linked(self, account_id: str, server_id: str | None) -> str:
        return self.render("linked", account_id=account_id, server_id=server_id)

    def status(self, account_id: str) -> str:
        return self.render("status", account_id=account_id)

    def notification(self, text: str) -> str:
        return self.render("notification", text=text)
