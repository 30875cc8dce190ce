# pcapdj/store.py
from __future__ import annotations

from typing import Any, Callable, Optional

import redis

from .core import StoreCommandError, StoreConnectionError
from .utils import get_logger

log = get_logger("store")


class CoordinationStore:
    """
    The one redis session shared by dispatcher, handshake and feed engine.

    Connection-level failures raise StoreConnectionError. Other command
    failures are logged and reported as "no effect" (None / False), except
    for lpop which raises StoreCommandError.
    """

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def connect(cls, host: str, port: int, **kwargs) -> "CoordinationStore":
        # job names are file paths: undecodable bytes round-trip like os.fsdecode
        client = redis.Redis(
            host=host, port=port, decode_responses=True, encoding_errors="surrogateescape", **kwargs
        )
        try:
            client.ping()
        except redis.exceptions.RedisError as e:
            client.close()
            raise StoreConnectionError(f"{host}:{port}: {e}") from e
        return cls(client)

    def _call(self, what: str, fn: Callable, *args, strict: bool = False):
        try:
            return fn(*args)
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            raise StoreConnectionError(f"{what}: {e}") from e
        except redis.exceptions.RedisError as e:
            if strict:
                raise StoreCommandError(f"{what}: {e}") from e
            log.error(f"Redis command {what} failed, ignored: {e}")
            return None

    def rpush(self, name: str, value: str) -> Optional[int]:
        return self._call(f"RPUSH {name}", self._client.rpush, name, value)

    def lpop(self, name: str) -> Optional[str]:
        """Head of the list, None once it is empty."""
        return self._call(f"LPOP {name}", self._client.lpop, name, strict=True)

    def sismember(self, name: str, value: str) -> bool:
        return bool(self._call(f"SISMEMBER {name}", self._client.sismember, name, value))

    def srem(self, name: str, value: str) -> Optional[int]:
        return self._call(f"SREM {name}", self._client.srem, name, value)

    def set(self, key: str, value: str) -> Optional[bool]:
        return self._call(f"SET {key}", self._client.set, key, value)

    def delete(self, key: str) -> Optional[int]:
        return self._call(f"DEL {key}", self._client.delete, key)

    def close(self) -> None:
        self._client.close()
