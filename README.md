# chatstatus

`chatstatus` is the status service of a chat cluster. Clients ask it which
chat server to connect to; it picks the server with the fewest logged-in
users (as counted in the Redis hash `logincount`), issues a fresh random
login token for the user and stores it in Redis under `utoken_<uid>`.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Configuration

By default the service reads `config.ini` from the current working
directory. A minimal file looks like this:

```ini
[StatusServer]
Host = 0.0.0.0
Port = 50052

[Redis]
Host = 127.0.0.1
Port = 6379
Password = password

[chatservers]
Name = chatserver1,chatserver2

[chatserver1]
Name = chatserver1
Host = 127.0.0.1
Port = 8090

[chatserver2]
Name = chatserver2
Host = 127.0.0.1
Port = 8091
```

`[chatservers] Name` is a comma separated list of section names; each of
those sections describes one chat server. Sections without a `Name` are
skipped. Missing sections or keys read as empty strings.

## Running

```
chatstatus
```

or, with a configuration file somewhere else:

```
chatstatus --config /path/to/config.ini
```

The server listens on `StatusServer.Host:StatusServer.Port` and shuts down
on SIGINT or SIGTERM. It exits with status 1 and prints the error if it
cannot start.

The gRPC service is named `message.StatusService` and offers two unary
methods, `GetChatServer` and `Login`. Requests and replies are UTF-8 JSON
objects rather than protobuf messages:

- `GetChatServer` takes `{"uid": ...}` and replies with `host`, `port`,
  `error` and `token`.
- `Login` takes `{"uid": ..., "token": ...}` and replies with `error`,
  `uid` and `token`.

## Using it as a library

```python
from chatstatus.config import ConfigManager
from chatstatus.redis_mgr import RedisManager
from chatstatus.status_service import StatusService

config = ConfigManager.from_file("config.ini")
redis = RedisManager.from_config(config)
service = StatusService.from_config(config, redis)

reply = service.get_chat_server(1001)
print(reply.host, reply.port, reply.token)

result = service.login(1001, reply.token)
print(result.error)
```

`StatusService.login` answers `ErrorCode.UID_INVALID` when a token is
already stored for the uid, `ErrorCode.TOKEN_INVALID` when no token is
stored but a non-empty one is given, and `ErrorCode.SUCCESS` otherwise.
A uid that has just been given a token by `get_chat_server` therefore
reads as `UID_INVALID`.

`StatusService.least_loaded` raises `LookupError` when no chat server is
configured; a server with no count in Redis is treated as fully loaded.

The main pieces:

- `chatstatus.config.ConfigManager` – INI configuration; `config["Redis"]["Host"]`
  or `config.get_value("Redis", "Host")`, and `config.chat_servers()`.
  `chatstatus.config.get_config()` returns one shared instance read from
  `./config.ini`.
- `chatstatus.redis_mgr.RedisManager` – a small set of Redis commands
  (`get`, `set`, `lpush`, `lpop`, `rpush`, `rpop`, `hset`, `hget`, `hdel`,
  `delete`, `exists`) that report failure through their result instead of
  raising. It works over a `RedisConnectionPool` of five clients, each
  pinged every 60 seconds and replaced if the ping fails.
- `chatstatus.pool.ConnectionPool` – blocking FIFO pool with `acquire`,
  `release`, a `connection()` context manager, `close` and `drain`;
  `acquire` on a closed pool raises `PoolClosedError`.
- `chatstatus.io_pool.LoopPool` – round-robin pool of asyncio event loops,
  each running on its own thread until `stop`.
- `chatstatus.singleton.singleton` – decorator making a no-argument factory
  run at most once.
- `chatstatus.status_service.StatusService` – the least-loaded server choice
  and token handling.
- `chatstatus.constants.ErrorCode` – error codes carried in replies.

## What it does not do

The package does not register users, check passwords or keep any user
accounts; it stores nothing but tokens in Redis and reads login counts that
the chat servers are expected to maintain there. It does not talk to the
chat servers themselves.