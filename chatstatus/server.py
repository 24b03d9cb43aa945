"""gRPC front end of the status service.

Messages travel as UTF-8 JSON objects whose fields match the reply classes.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import signal
import sys
import threading
from concurrent import futures
from typing import Any

import grpc

from chatstatus.config import ConfigManager, get_config
from chatstatus.redis_mgr import RedisManager
from chatstatus.status_service import StatusService

logger = logging.getLogger(__name__)

SERVICE_NAME = "message.StatusService"
MAX_WORKERS = 8
SHUTDOWN_GRACE = 5.0


def _decode(data: bytes) -> dict[str, Any]:
    if not data:
        return {}
    message = json.loads(data.decode("utf-8"))
    if not isinstance(message, dict):
        raise ValueError("request must be a JSON object")
    return message


def _encode(reply: Any) -> bytes:
    fields = dataclasses.asdict(reply)
    fields["error"] = int(fields["error"])
    return json.dumps(fields).encode("utf-8")


def _handlers(service: StatusService) -> grpc.GenericRpcHandler:
    def get_chat_server(request: dict[str, Any], context: grpc.ServicerContext) -> Any:
        return service.get_chat_server(int(request.get("uid", 0)))

    def login(request: dict[str, Any], context: grpc.ServicerContext) -> Any:
        return service.login(int(request.get("uid", 0)), str(request.get("token", "")))

    return grpc.method_handlers_generic_handler(
        SERVICE_NAME,
        {
            "GetChatServer": grpc.unary_unary_rpc_method_handler(
                get_chat_server, request_deserializer=_decode, response_serializer=_encode
            ),
            "Login": grpc.unary_unary_rpc_method_handler(
                login, request_deserializer=_decode, response_serializer=_encode
            ),
        },
    )


def build_server(config: ConfigManager, service: StatusService) -> tuple[grpc.Server, int]:
    """Create an unstarted server listening on ``[StatusServer] Host:Port``.

    Returns the server and the port it is bound to.
    """
    section = config["StatusServer"]
    address = f"{section['Host']}:{section['Port']}"
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=MAX_WORKERS))
    server.add_generic_rpc_handlers((_handlers(service),))
    try:
        port = server.add_insecure_port(address)
    except RuntimeError as exc:
        raise OSError(f"cannot listen on {address}") from exc
    if port == 0:
        raise OSError(f"cannot listen on {address}")
    return server, port


def run_server(config: ConfigManager) -> None:
    """Serve until SIGINT or SIGTERM arrives."""
    redis = RedisManager.from_config(config)
    service = StatusService.from_config(config, redis)
    server, port = build_server(config, service)
    server.start()
    logger.info("Server listening on %s:%s", config["StatusServer"]["Host"], port)

    def shutdown(signum: int, frame: Any) -> None:
        logger.info("Shutting down server...")
        server.stop(SHUTDOWN_GRACE)

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, shutdown)
        signal.signal(signal.SIGTERM, shutdown)
    try:
        server.wait_for_termination()
    finally:
        server.stop(None)
        redis.close()


def main(argv: list[str] | None = None) -> int:
    """Command entry point; returns the process exit status."""
    parser = argparse.ArgumentParser(prog="chatstatus", description="Chat status server")
    parser.add_argument("--config", help="path of the INI file (default: ./config.ini)")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    try:
        config = ConfigManager.from_file(args.config) if args.config else get_config()
        run_server(config)
    except Exception as exc:  # noqa: BLE001 - report any failure and exit
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0