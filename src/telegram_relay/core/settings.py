"""Configurações Pydantic Settings para o relay."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    """Configurações da aplicação. Carrega de env e .env.

    Construída uma única vez em `bootstrap_di()` e repassada explicitamente
    aos componentes. Credenciais sempre via env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_prefix="RELAY_", case_sensitive=False)

    # Flask
    flask_debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Telegram Bot API
    telegram_bot_token: str = Field(..., description="Token do bot emitido pelo BotFather")
    telegram_api_base: str = Field(default="https://api.telegram.org")
    telegram_parse_mode: str = Field(default="Markdown")
    telegram_timeout_s: float = Field(default=10.0)
    webhook_secret: str | None = Field(default=None, description="Comparado com X-Telegram-Bot-Api-Secret-Token")
    notify_secret: str | None = Field(default=None, description="Comparado com X-Bot-Secret no /notify")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_socket_timeout_s: float = Field(default=5.0)
    redis_max_retries: int = Field(default=5)
    redis_retry_step_ms: int = Field(default=50)
    redis_retry_cap_ms: int = Field(default=2000)
    key_namespace: str = Field(default="telegram_", description="Prefixo das chaves de conta/fila lidas pelo servidor do jogo")
    key_account_segment: str = Field(default="user", description="Segmento da chave conta→chat (`user` no bot implantado, `account` no esquema genérico)")

    # Janelas
    reply_window_s: int = Field(default=300)
    message_ttl_s: int = Field(default=86400)

    # Logs
    log_level: str = Field(default="INFO")
