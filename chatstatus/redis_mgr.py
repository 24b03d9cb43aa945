"""Pooled Redis access with forgiving, logged commands."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

import redis

from chatstatus.config import ConfigManager
from chatstatus.pool import ConnectionPool, PoolClosedError

logger = logging.getLogger(__name__)

CHECK_INTERVAL = 60.0
DEFAULT_POOL_SIZE = 5

Connector = Callable[[str, int, str], Any]

_FAILED = object()
_CONNECTION_ERRORS = (redis.RedisError, OSError)


def _default_connect(host: str, port: int, password: str) -> redis.Redis:
    """Open a client and make sure it is reachable and authenticated."""
    client = redis.Redis(
        host=host, port=port, password=password or None, decode_responses=True
    )
    client.ping()
    return client


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _to_port(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


class RedisConnectionPool(ConnectionPool[Any]):
    """Pool of authenticated Redis clients, pinged periodically in the background."""

    def __init__(
        self,
        size: int,
        host: str,
        port: int,
        password: str,
        connect: Connector | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._password = password
        self._connect: Connector = connect or _default_connect
        clients = [client for client in (self._open() for _ in range(size)) if client is not None]
        super().__init__(clients)
        self._stop = threading.Event()
        self._checker = threading.Thread(
            target=self._check_loop, name="redis-pool-check", daemon=True
        )
        self._checker.start()

    def _open(self) -> Any | None:
        try:
            client = self._connect(self._host, self._port, self._password)
        except _CONNECTION_ERRORS as exc:
            logger.warning("redis connection to %s:%s failed: %s", self._host, self._port, exc)
            return None
        logger.info("redis authentication succeeded")
        return client

    def _check_loop(self) -> None:
        while not self._stop.wait(CHECK_INTERVAL):
            self.check_connections()

    def check_connections(self) -> None:
        """Ping every idle client; replace the ones that fail, drop those that cannot be replaced."""
        if self.closed:
            return
        kept = []
        for client in self.drain():
            try:
                client.ping()
                kept.append(client)
                continue
            except _CONNECTION_ERRORS as exc:
                logger.warning("Error keeping connection alive: %s", exc)
            try:
                client.close()
            except _CONNECTION_ERRORS:
                pass
            replacement = self._open()
            if replacement is not None:
                kept.append(replacement)
        for client in kept:
            self.release(client)

    def clear_connections(self) -> None:
        """Close and remove every idle client."""
        for client in self.drain():
            try:
                client.close()
            except _CONNECTION_ERRORS:
                pass

    def close(self) -> None:
        """Stop handing out clients and stop the background check."""
        super().close()
        self._stop.set()
        if self._checker is not threading.current_thread():
            self._checker.join()


class RedisManager:
    """Redis commands that report failure through their result instead of raising."""

    def __init__(self, pool: RedisConnectionPool) -> None:
        self._pool = pool

    @classmethod
    def from_config(cls, config: ConfigManager) -> RedisManager:
        """Build a manager from the ``[Redis]`` section of ``config``."""
        section = config["Redis"]
        pool = RedisConnectionPool(
            DEFAULT_POOL_SIZE,
            section["Host"],
            _to_port(section["Port"]),
            section["Password"],
        )
        return cls(pool)

    def _execute(self, description: str, command: Callable[[Any], Any]) -> Any:
        try:
            with self._pool.connection() as client:
                return command(client)
        except PoolClosedError:
            logger.warning("[ %s ] failed: pool is closed", description)
        except _CONNECTION_ERRORS as exc:
            logger.warning("[ %s ] failed: %s", description, exc)
        return _FAILED

    def get(self, key: str) -> str | None:
        """Value of a string key, or None if it is missing or not a string."""
        reply = self._execute(f"GET {key}", lambda c: c.get(key))
        if reply is _FAILED or reply is None:
            return None
        logger.info("Succeed to execute command [ GET %s ]", key)
        return _text(reply)

    def set(self, key: str, value: str) -> bool:
        reply = self._execute(f"SET {key} {value}", lambda c: c.set(key, value))
        ok = reply is True or (
            isinstance(reply, (str, bytes)) and _text(reply).lower() == "ok"
        )
        logger.info("Execute command [ SET %s %s ] %s", key, value, "success" if ok else "failure")
        return ok

    def _push(self, name: str, command: Callable[[Any], Any], key: str, value: str) -> bool:
        reply = self._execute(f"{name} {key} {value}", command)
        ok = isinstance(reply, int) and not isinstance(reply, bool) and reply > 0
        logger.info("Execute command [ %s %s %s ] %s", name, key, value, "success" if ok else "failure")
        return ok

    def _pop(self, name: str, command: Callable[[Any], Any], key: str) -> str | None:
        reply = self._execute(f"{name} {key}", command)
        if reply is _FAILED or reply is None:
            logger.info("Execute command [ %s %s ] failure", name, key)
            return None
        logger.info("Execute command [ %s %s ] success", name, key)
        return _text(reply)

    def lpush(self, key: str, value: str) -> bool:
        return self._push("LPUSH", lambda c: c.lpush(key, value), key, value)

    def lpop(self, key: str) -> str | None:
        return self._pop("LPOP", lambda c: c.lpop(key), key)

    def rpush(self, key: str, value: str) -> bool:
        return self._push("RPUSH", lambda c: c.rpush(key, value), key, value)

    def rpop(self, key: str) -> str | None:
        return self._pop("RPOP", lambda c: c.rpop(key), key)

    def hset(self, key: str, field: str, value: str | bytes) -> bool:
        """Set a hash field; ``value`` may be text or raw bytes."""
        reply = self._execute(f"HSET {key} {field}", lambda c: c.hset(key, field, value))
        ok = isinstance(reply, int) and not isinstance(reply, bool)
        logger.info("Execute command [ HSET %s %s ] %s", key, field, "success" if ok else "failure")
        return ok

    def hget(self, key: str, field: str) -> str:
        """Value of a hash field, or "" if it cannot be read."""
        reply = self._execute(f"HGET {key} {field}", lambda c: c.hget(key, field))
        if reply is _FAILED or reply is None:
            logger.info("Execute command [ HGET %s %s ] failure", key, field)
            return ""
        return _text(reply)

    def hdel(self, key: str, field: str) -> bool:
        """True if the field existed and was removed."""
        reply = self._execute(f"HDEL {key} {field}", lambda c: c.hdel(key, field))
        return isinstance(reply, int) and not isinstance(reply, bool) and reply > 0

    def delete(self, key: str) -> bool:
        """True if the command ran, whether or not the key existed."""
        reply = self._execute(f"DEL {key}", lambda c: c.delete(key))
        return isinstance(reply, int) and not isinstance(reply, bool)

    def exists(self, key: str) -> bool:
        reply = self._execute(f"EXISTS {key}", lambda c: c.exists(key))
        found = isinstance(reply, int) and not isinstance(reply, bool) and reply != 0
        logger.info("%s [ Key %s ]", "Found" if found else "Not Found", key)
        return found

    def close(self) -> None:
        """Close the pool and release every idle client."""
        self._pool.close()
        self._pool.clear_connections()