"""Valores persistidos no Redis (JSON) como modelos Pydantic.

Todos serializam via `dump_value()`: JSON compacto, aliases e sem campos nulos,
que é o formato lido pelo servidor do jogo.
"""
from __future__ import annotations
import json
from enum import Enum
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

class ReplyKind(str, Enum):
    PM = "PM"
    GUILD = "GUILD"

class StoredValue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def dump_value(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

class LinkTokenValue(StoredValue):
    """Valor de `token:<linkId>` emitido pelo jogo.

    `legacy` marca o formato antigo (id puro em string), mantido só por
    compatibilidade e considerado obsoleto.
    """
    account_id: str = Field(validation_alias=AliasChoices("userId", "accountId", "account_id"), serialization_alias="userId")
    server_id: str | None = Field(default=None, validation_alias=AliasChoices("serverId", "server_id"), serialization_alias="serverId")
    language: str | None = None
    legacy: bool = Field(default=False, exclude=True)

def decode_link_token(raw: str) -> LinkTokenValue:
    """Decodifica o valor do token: objeto JSON estruturado ou id puro (legado).

    :raises ValueError: objeto JSON sem id de conta, ou valor vazio.
    """
    try:
        data = json.loads(raw)
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("userId", "accountId", "serverId"):
            if isinstance(data.get(key), (int, float)) and not isinstance(data.get(key), bool):
                data[key] = str(data[key])
        return LinkTokenValue.model_validate(data)
    ident = data if isinstance(data, str) else raw
    ident = ident.strip()
    if not ident:
        raise ValueError("empty link token value")
    return LinkTokenValue(account_id=ident, legacy=True)

class ReplyPermit(StoredValue):
    target: str
    kind: ReplyKind = Field(alias="type")

class ReplySession(StoredValue):
    target: str
    kind: ReplyKind = Field(alias="type")
    original_message_id: int | None = Field(default=None, alias="originalMessageId")
    context_id: str | None = Field(default=None, alias="contextId")

class PendingEntry(StoredValue):
    """Entrada da fila `pending:<accountId>` consumida pelo servidor do jogo.

    `to` ausente significa mensagem de guilda.
    """
    to: str | None = None
    content: str
