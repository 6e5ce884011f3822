"""In-memory stand-ins for the registry transport and codec compilers."""

import threading
import time
from collections.abc import Callable, Sequence
from typing import Any

from schema_cache.codecs.base import Codec
from schema_cache.registry.models import SchemaType

Route = Any | Exception | Callable[[dict[str, Any] | None], Any]


class FakeTransport:
    """Answers registry requests from a route table and counts every call.

    A route value may be a JSON-like body, an exception instance to raise, or
    a callable receiving the request body.
    """

    def __init__(self, routes: dict[tuple[str, str], Route] | None = None, delay: float = 0.0):
        self.routes: dict[tuple[str, str], Route] = dict(routes or {})
        self.delay = delay
        self.calls: list[tuple[str, str, dict[str, Any] | None, dict[str, Any] | None]] = []
        self._lock = threading.Lock()
        self.closed = False

    def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        with self._lock:
            self.calls.append((method, path, body, params))
        if self.delay:
            time.sleep(self.delay)

        route = self.routes.get((method, path))
        if route is None:
            raise AssertionError(f"Unexpected registry request: {method} {path}")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(body)
        return route

    def count(self, method: str, path: str) -> int:
        with self._lock:
            return sum(1 for m, p, _, _ in self.calls if (m, p) == (method, path))

    def close(self) -> None:
        self.closed = True


class EchoCodec(Codec):
    schema_type = SchemaType.AVRO

    def __init__(self, text: str):
        self.text = text

    def encode(self, value: Any) -> bytes:
        return repr(value).encode()

    def decode(self, data: bytes) -> Any:
        return data.decode()

    def encode_json(self, value: Any) -> str:
        return repr(value)

    def decode_json(self, text: str) -> Any:
        return text


class CountingCompiler:
    """Codec compiler that counts invocations and can be slowed down or made to fail."""

    def __init__(self, delay: float = 0.0, error: Exception | None = None):
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, list[tuple[str, str]]]] = []
        self._lock = threading.Lock()

    def __call__(self, text: str, references: Sequence[tuple[str, str]] = ()) -> Codec:
        with self._lock:
            self.calls.append((text, list(references)))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return EchoCodec(text)
