"""Infra de logging JSON usando structlog, com trace_id contextual."""
from __future__ import annotations
import logging
import structlog
import sys
from typing import Any
from uuid import uuid4
from contextvars import ContextVar

trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="-")

def set_trace_id(value: str | None = None) -> str:
    """Define trace_id no contexto atual e retorna o valor definido."""
    tid = value or uuid4().hex
    trace_id_ctx.set(tid)
    return tid

def _inject_trace_id(_: Any, __: str, event_dict: dict) -> dict:
    return {**event_dict, "trace_id": trace_id_ctx.get()}

def configure_logging(level: str = "INFO") -> None:
    """Configura structlog (JSON em stdout) com o nível informado."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            _inject_trace_id,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )

def get_logger() -> structlog.stdlib.BoundLogger:
    """Logger JSON com trace_id injetado; respeita a configuração vigente."""
    return structlog.get_logger()
