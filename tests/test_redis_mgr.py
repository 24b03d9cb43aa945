from unittest import mock

import pytest
import redis

from chatstatus.config import ConfigManager
from chatstatus.pool import PoolClosedError
from chatstatus.redis_mgr import RedisConnectionPool, RedisManager


class FakeRedis:
    """In-memory stand-in that answers like a decoding redis client."""

    def __init__(self, store):
        self.store = store
        self.closed = False
        self.ping_fails = False

    def _typed(self, key, kind):
        value = self.store.get(key)
        if value is not None and not isinstance(value, kind):
            raise redis.ResponseError("WRONGTYPE")
        return value

    def ping(self):
        if self.ping_fails:
            raise redis.ConnectionError("gone")
        return True

    def close(self):
        self.closed = True

    def get(self, key):
        return self._typed(key, str)

    def set(self, key, value):
        self.store[key] = value
        return True

    def lpush(self, key, value):
        items = self._typed(key, list)
        if items is None:
            items = self.store[key] = []
        items.insert(0, value)
        return len(items)

    def rpush(self, key, value):
        items = self._typed(key, list)
        if items is None:
            items = self.store[key] = []
        items.append(value)
        return len(items)

    def lpop(self, key):
        items = self._typed(key, list)
        return items.pop(0) if items else None

    def rpop(self, key):
        items = self._typed(key, list)
        return items.pop() if items else None

    def hset(self, key, field, value):
        table = self._typed(key, dict)
        if table is None:
            table = self.store[key] = {}
        added = 0 if field in table else 1
        table[field] = value
        return added

    def hget(self, key, field):
        table = self._typed(key, dict)
        return None if table is None else table.get(field)

    def hdel(self, key, field):
        table = self._typed(key, dict)
        if table and field in table:
            del table[field]
            return 1
        return 0

    def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    def exists(self, key):
        return 1 if key in self.store else 0


@pytest.fixture
def store():
    return {}


@pytest.fixture
def clients():
    return []


@pytest.fixture
def pool(store, clients):
    def connect(host, port, password):
        client = FakeRedis(store)
        clients.append(client)
        return client

    password = "password"
    p = RedisConnectionPool(3, "localhost", 6379, password=password, connect=connect)
    yield p
    p.close()


@pytest.fixture
def manager(pool):
    return RedisManager(pool)


def test_pool_holds_requested_connections(pool):
    assert len(pool) == 3


def test_failed_connections_are_skipped(store):
    attempts = []

    def connect(host, port, password):
        attempts.append((host, port, password))
        if len(attempts) % 2 == 0:
            raise redis.ConnectionError("refused")
        return FakeRedis(store)

    password = "password"
    p = RedisConnectionPool(4, "localhost", 6379, password=password, connect=connect)
    try:
        assert len(p) == 2
        assert attempts[0] == ("localhost", 6379, "password")
    finally:
        p.close()


def test_set_then_get_round_trip(manager):
    assert manager.set("greeting", "hello") is True
    assert manager.get("greeting") == "hello"


def test_get_missing_key_returns_none(manager):
    assert manager.get("absent") is None


def test_get_wrong_type_returns_none(manager):
    assert manager.rpush("queue", "a") is True
    assert manager.get("queue") is None


def test_lpush_lpop_is_last_in_first_out(manager):
    assert manager.lpush("list", "a")
    assert manager.lpush("list", "b")
    assert manager.lpop("list") == "b"
    assert manager.lpop("list") == "a"
    assert manager.lpop("list") is None


def test_rpush_lpop_is_first_in_first_out(manager):
    manager.rpush("list", "a")
    manager.rpush("list", "b")
    assert manager.lpop("list") == "a"
    assert manager.rpop("list") == "b"
    assert manager.rpop("list") is None


def test_hset_hget_round_trip(manager):
    assert manager.hset("logincount", "chatserver1", "7") is True
    assert manager.hget("logincount", "chatserver1") == "7"


def test_hset_overwrite_still_succeeds(manager):
    assert manager.hset("h", "f", "1") is True
    assert manager.hset("h", "f", "2") is True
    assert manager.hget("h", "f") == "2"


def test_hset_accepts_bytes(manager):
    assert manager.hset("h", "blob", b"raw") is True
    assert manager.hget("h", "blob") == "raw"


def test_hget_missing_returns_empty_string(manager):
    assert manager.hget("nothing", "field") == ""


def test_hdel_reports_removal(manager):
    manager.hset("h", "f", "v")
    assert manager.hdel("h", "f") is True
    assert manager.hdel("h", "f") is False
    assert manager.hget("h", "f") == ""


def test_delete_and_exists(manager):
    manager.set("k", "v")
    assert manager.exists("k") is True
    assert manager.delete("k") is True
    assert manager.exists("k") is False
    assert manager.delete("k") is True


def test_connections_return_to_pool_after_commands(manager, pool):
    manager.set("k", "v")
    manager.get("k")
    manager.get("missing")
    assert len(pool) == 3


def test_closed_manager_fails_softly(manager, pool):
    manager.close()
    assert len(pool) == 0
    assert manager.get("k") is None
    assert manager.set("k", "v") is False
    assert manager.hget("k", "f") == ""
    assert manager.exists("k") is False


def test_closed_pool_refuses_acquire(pool):
    pool.close()
    with pytest.raises(PoolClosedError):
        pool.acquire()


def test_clear_connections_closes_clients(pool, clients):
    pool.clear_connections()
    assert len(pool) == 0
    assert all(client.closed for client in clients)


def test_check_connections_replaces_dead_clients(pool, clients):
    dead = clients[0]
    dead.ping_fails = True
    pool.check_connections()
    assert dead.closed is True
    assert len(clients) == 4
    assert len(pool) == 3
    assert dead not in pool.drain()


def test_check_connections_drops_unreplaceable_clients(store):
    attempts = []

    def connect(host, port, password):
        attempts.append(1)
        if len(attempts) > 2:
            raise redis.ConnectionError("refused")
        return FakeRedis(store)

    password = "password"
    p = RedisConnectionPool(2, "localhost", 6379, password=password, connect=connect)
    try:
        first = p.acquire()
        first.ping_fails = True
        p.release(first)
        p.check_connections()
        assert len(p) == 1
    finally:
        p.close()


def test_from_config_uses_redis_section(store):
    config = ConfigManager(
        {"Redis": {"Host": "127.0.0.1", "Port": "6380", "Password": "password"}}
    )
    with mock.patch("redis.Redis", side_effect=lambda **kw: FakeRedis(store)) as factory:
        manager = RedisManager.from_config(config)
    try:
        assert factory.call_count == 5
        kwargs = factory.call_args.kwargs
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 6380
        assert kwargs["password"] == "password"
        assert manager.set("k", "v") is True
        assert manager.get("k") == "v"
    finally:
        manager.close()