"""Cliente do Redis com retry linear limitado e tradução de falhas.

- Reconexão/retry delegados ao `redis.retry.Retry` do redis-py, com backoff
  linear limitado: espera = min(tentativa * passo, teto).
- Esgotado o orçamento de retries, a operação levanta `StoreUnavailable`.
- Sequências multi-chave usam pipeline transacional (MULTI/EXEC).
"""
from __future__ import annotations
from typing import Any, Callable, Mapping
import redis
from redis.backoff import AbstractBackoff
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError
from redis.retry import Retry
from .errors import StoreUnavailable
from .logging import get_logger
from .settings import Settings

log = get_logger()

class LinearBackoff(AbstractBackoff):
    """Backoff linear com teto (segundos)."""
    def __init__(self, step: float = 0.05, cap: float = 2.0):
        self._step = step
        self._cap = cap

    def reset(self) -> None:
        pass

    def compute(self, failures: int) -> float:
        return min(max(failures, 1) * self._step, self._cap)

def create_redis_client(settings: Settings) -> redis.Redis:
    """Cria cliente síncrono com decode_responses e política de retry do settings."""
    backoff = LinearBackoff(settings.redis_retry_step_ms / 1000.0, settings.redis_retry_cap_ms / 1000.0)
    return redis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_s,
        retry=Retry(backoff, settings.redis_max_retries),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )

class RedisStore:
    """Implementa a porta KeyValueStore sobre redis-py."""
    def __init__(self, client: redis.Redis):
        self._redis = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisStore":
        return cls(create_redis_client(settings))

    def _run(self, op: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except (RedisConnectionError, RedisTimeoutError) as e:
            log.error("store_unavailable", op=op, error=str(e))
            raise StoreUnavailable(f"redis {op} failed: {e}") from e

    def get(self, key: str) -> str | None:
        return self._run("get", lambda: self._redis.get(key))

    def set(self, key: str, value: str, ttl_s: int | None = None) -> None:
        self._run("set", lambda: self._redis.set(key, value, ex=ttl_s))

    def getdel(self, key: str) -> str | None:
        """Lê e apaga a chave numa única operação atômica (GETDEL)."""
        return self._run("getdel", lambda: self._redis.getdel(key))

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(self._run("delete", lambda: self._redis.delete(*keys)))

    def rpush(self, key: str, value: str, ttl_s: int | None = None) -> int:
        """RPUSH e, se houver TTL, renova a expiração da lista na mesma transação."""
        def _push() -> int:
            pipe = self._redis.pipeline(transaction=True)
            pipe.rpush(key, value)
            if ttl_s is not None:
                pipe.expire(key, ttl_s)
            return int(pipe.execute()[0])
        return self._run("rpush", _push)

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        if not mapping:
            return
        self._run("hset", lambda: self._redis.hset(key, mapping=dict(mapping)))

    def set_many(self, values: Mapping[str, str], delete: tuple[str, ...] = ()) -> None:
        """Grava várias chaves (e apaga outras) atomicamente via MULTI/EXEC."""
        def _write() -> None:
            pipe = self._redis.pipeline(transaction=True)
            if delete:
                pipe.delete(*delete)
            for k, v in values.items():
                pipe.set(k, v)
            pipe.execute()
        self._run("set_many", _write)

    def ping(self) -> bool:
        return bool(self._run("ping", self._redis.ping))
