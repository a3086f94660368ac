"""Taxonomia de erros do relay.

Cada erro carrega um `code` estável e o `status_code` HTTP usado pelas rotas.
Erros de domínio (token, permit, comando) viram mensagem ao usuário no chat;
falhas de store/entrega são logadas e devolvidas ao chamador HTTP.
"""
from __future__ import annotations


class RelayError(Exception):
    """Base de todos os erros do relay."""
    code: str = "E_INTERNAL"
    status_code: int = 500

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class TokenInvalidOrExpired(RelayError):
    code = "E_TOKEN_INVALID"
    status_code = 404


class NotLinked(RelayError):
    code = "E_NOT_LINKED"
    status_code = 404


class PermitExpired(RelayError):
    code = "E_PERMIT_EXPIRED"
    status_code = 410


class MalformedCommand(RelayError):
    """Comando com número de argumentos inválido."""
    code = "E_MALFORMED_COMMAND"
    status_code = 400

    def __init__(self, command: str, usage: str):
        super().__init__(f"malformed /{command}", command=command)
        self.command = command
        self.usage = usage


class InvalidRequest(RelayError):
    code = "E_INVALID_REQUEST"
    status_code = 400


class StoreUnavailable(RelayError):
    """Store inacessível após esgotar o orçamento de retries."""
    code = "E_STORE_UNAVAILABLE"
    status_code = 503


class DeliveryFailed(RelayError):
    """Plataforma de chat rejeitou a mensagem ou houve erro de rede."""
    code = "E_DELIVERY_FAILED"
    status_code = 500
