from __future__ import annotations

import asyncio
import socket
from typing import Any

from basic_api_client import ApiClient


def invoke(client: ApiClient, mode: str, method: str, *args: Any, **kwargs: Any) -> Any:
    callable_obj = getattr(client, method if mode == "sync" else f"{method}_async")
    result = callable_obj(*args, **kwargs)
    return asyncio.run(result) if mode == "async" else result


def free_tcp_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])
