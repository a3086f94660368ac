"""Guardrails simples: sanitização de texto do usuário e escape de Markdown."""
import re

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
MARKDOWN_SPECIALS = re.compile(r"([_*`\[])")
BOLD_SPAN = re.compile(r"\*\*.+?\*\*", re.S)

def sanitize_text(text: str) -> str:
    """Remove caracteres de controle e espaços nas pontas (preserva quebras de linha)."""
    return CONTROL_CHARS.sub("", text or "").strip()

def escape_markdown(value) -> str:
    """Escapa caracteres especiais do Markdown legado do Telegram."""
    return MARKDOWN_SPECIALS.sub(r"\\\1", str(value if value is not None else ""))

def has_bold_span(text: str) -> bool:
    """Heurística de 'já formatado': existe algum trecho entre `**`."""
    return bool(BOLD_SPAN.search(text or ""))
