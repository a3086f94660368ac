"""Portas hexagonais (interfaces) e DTOs."""
from __future__ import annotations
from typing import Mapping, Protocol
from pydantic import BaseModel, ConfigDict, Field, field_validator
from ..repo.models import ReplyKind

# --- Telegram (entrada) ---

class ChatDTO(BaseModel):
    id: int

class UserDTO(BaseModel):
    id: int
    first_name: str = ""
    is_bot: bool = False

class MessageDTO(BaseModel):
    """Subconjunto do `Message` do Telegram usado pelo roteador."""
    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    chat: ChatDTO
    from_user: UserDTO | None = Field(default=None, alias="from")
    text: str | None = None

class CallbackQueryDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    data: str | None = None
    message: MessageDTO | None = None
    from_user: UserDTO | None = Field(default=None, alias="from")

class UpdateDTO(BaseModel):
    """Update do webhook normalizado. Campos não tratados são ignorados."""
    update_id: int | None = None
    message: MessageDTO | None = None
    callback_query: CallbackQueryDTO | None = None

# --- Telegram (saída) ---

class DeliveryDTO(BaseModel):
    """Resultado padronizado de chamada à Bot API."""
    ok: bool
    message_id: int | None = None
    error_code: str | None = None
    error_detail: str | None = None

# --- Servidor do jogo ---

class NotificationRequestDTO(BaseModel):
    """Corpo do POST /notify.

    `kind` e `sender` explícitos têm precedência sobre a leitura do texto.
    """
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    text: str = Field(min_length=1)
    chat_id: int | None = Field(default=None, alias="chatId")
    kind: ReplyKind | None = None
    sender: str | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

# --- Portas ---

class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str, ttl_s: int | None = None) -> None: ...
    def getdel(self, key: str) -> str | None: ...
    def delete(self, *keys: str) -> int: ...
    def rpush(self, key: str, value: str, ttl_s: int | None = None) -> int: ...
    def hset(self, key: str, mapping: Mapping[str, str]) -> None: ...
    def set_many(self, values: Mapping[str, str], delete: tuple[str, ...] = ()) -> None: ...

class ChatPlatform(Protocol):
    def send_message(self, chat_id: int, text: str, keyboard: dict | None = None, force_reply: bool = False) -> DeliveryDTO: ...
    def answer_callback(self, callback_query_id: str, text: str | None = None) -> DeliveryDTO: ...
    def edit_message_buttons(self, chat_id: int, message_id: int, keyboard: dict) -> DeliveryDTO: ...
