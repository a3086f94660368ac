"""Teclados inline (reply_markup) usados pelo bot."""
from __future__ import annotations

REPLY_CONTEXT_PREFIX = "reply_context:"

CB_HELP = "help"
CB_STATUS = "status"
CB_DISCONNECT = "disconnect"
CB_NOOP = "noop"

def _inline(rows: list[list[tuple[str, str]]]) -> dict:
    return {"inline_keyboard": [[{"text": t, "callback_data": d} for t, d in row] for row in rows]}

def main_menu() -> dict:
    return _inline([[("❓ Help", CB_HELP), ("📡 Status", CB_STATUS)]])

def linked_menu() -> dict:
    return _inline([
        [("📡 Status", CB_STATUS), ("❌ Disconnect", CB_DISCONNECT)],
        [("❓ Help", CB_HELP)],
    ])

def reply_button(context_id: str, guild: bool = False, window_min: int = 5) -> dict:
    label = f"🛡️ Reply to Guild ({window_min} min)" if guild else f"↩️ Reply ({window_min} min)"
    return _inline([[(label, f"{REPLY_CONTEXT_PREFIX}{context_id}")]])

def replied_marker() -> dict:
    return _inline([[("✅ Replied", CB_NOOP)]])

def parse_reply_context(data: str | None) -> str | None:
    """Extrai o context id de `reply_context:<id>`; None se não for desse tipo."""
    if not data or not data.startswith(REPLY_CONTEXT_PREFIX):
        return None
    ctx = data[len(REPLY_CONTEXT_PREFIX):].strip()
    return ctx or None
