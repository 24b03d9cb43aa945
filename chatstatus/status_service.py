"""Chat server selection and login token checks for the status service."""

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from chatstatus.config import ConfigManager
from chatstatus.constants import LOGIN_COUNT, USER_TOKEN_PREFIX, ErrorCode

logger = logging.getLogger(__name__)

# Load assumed for a server whose login count is not recorded.
UNKNOWN_LOAD = 2**31 - 1


class TokenStore(Protocol):
    """The Redis operations the service needs."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> bool: ...

    def hget(self, key: str, field: str) -> str: ...


@dataclass
class ChatServer:
    """A chat server that clients can be sent to."""

    host: str = ""
    port: str = ""
    name: str = ""
    con_count: int = 0


@dataclass(frozen=True)
class ChatServerReply:
    """Where a client should connect, and the token it must present there."""

    host: str
    port: str
    error: ErrorCode
    token: str


@dataclass(frozen=True)
class LoginReply:
    """Outcome of a login token check."""

    error: ErrorCode
    uid: int = 0
    token: str = ""


def generate_unique_string() -> str:
    """Return a fresh random UUID in its canonical text form."""
    return str(uuid.uuid4())


class StatusService:
    """Balances clients across chat servers and tracks their login tokens."""

    def __init__(self, servers: Iterable[ChatServer], redis: TokenStore) -> None:
        self._servers: dict[str, ChatServer] = {server.name: server for server in servers}
        self._redis = redis
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ConfigManager, redis: TokenStore) -> StatusService:
        """Build the service from the chat servers listed in ``config``."""
        servers = [
            ChatServer(host=section["Host"], port=section["Port"], name=section["Name"])
            for section in config.chat_servers()
        ]
        return cls(servers, redis)

    @property
    def servers(self) -> list[ChatServer]:
        return list(self._servers.values())

    def _load_of(self, name: str) -> int:
        count = self._redis.hget(LOGIN_COUNT, name)
        return int(count) if count else UNKNOWN_LOAD

    def least_loaded(self) -> ChatServer:
        """Return the server with the fewest logins; the first one wins ties.

        Raises LookupError if no chat server is configured.
        """
        with self._lock:
            if not self._servers:
                raise LookupError("no chat servers configured")
            best: ChatServer | None = None
            for server in self._servers.values():
                server.con_count = self._load_of(server.name)
                if best is None or server.con_count < best.con_count:
                    best = server
            return dataclasses.replace(best)

    def insert_token(self, uid: int, token: str) -> None:
        """Record ``token`` as the login token of ``uid``."""
        self._redis.set(f"{USER_TOKEN_PREFIX}{uid}", token)

    def get_chat_server(self, uid: int) -> ChatServerReply:
        """Pick a chat server for ``uid`` and issue a login token for it."""
        server = self.least_loaded()
        token = generate_unique_string()
        self.insert_token(uid, token)
        return ChatServerReply(
            host=server.host, port=server.port, error=ErrorCode.SUCCESS, token=token
        )

    def login(self, uid: int, token: str) -> LoginReply:
        """Check ``token`` for ``uid``."""
        stored = self._redis.get(f"{USER_TOKEN_PREFIX}{uid}")
        # A token already held for this uid means the uid is taken.
        if stored is not None:
            return LoginReply(error=ErrorCode.UID_INVALID)
        if token != "":
            return LoginReply(error=ErrorCode.TOKEN_INVALID)
        return LoginReply(error=ErrorCode.SUCCESS, uid=uid, token=token)