"""Typed ASGI definitions and small send/receive helpers.

Only the webhook receiver touches raw ASGI. Users never see these.
"""

import json
from collections.abc import AsyncIterator, Awaitable, Callable, MutableMapping
from dataclasses import dataclass
from typing import Any, TypeAlias

# Raw ASGI types
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]


class BodyTooLarge(Exception):  # noqa: N818
    """The request body exceeded the configured limit."""


@dataclass(frozen=True, slots=True)
class HTTPScope:
    """Typed HTTP scope parsed from raw ASGI scope dict."""

    method: str
    path: str
    query_string: bytes
    headers: tuple[tuple[bytes, bytes], ...]
    client: tuple[str, int] | None

    @classmethod
    def from_scope(cls, scope: Scope) -> "HTTPScope":
        """Parse raw ASGI scope into typed object."""
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            query_string=scope.get("query_string", b""),
            headers=tuple(scope.get("headers", ())),
            client=tuple(client) if client else None,
        )

    def header(self, name: str) -> str | None:
        """Return the first header named ``name`` (case-insensitive)."""
        key = name.lower().encode("latin-1")
        for header_name, value in self.headers:
            if header_name.lower() == key:
                return value.decode("latin-1")
        return None


async def stream_body(receive: Receive) -> AsyncIterator[bytes]:
    """Stream the request body in chunks."""
    while True:
        message = await receive()
        body = message.get("body", b"")
        if body:
            yield body
        if not message.get("more_body", False):
            break


async def read_body(receive: Receive, *, limit: int) -> bytes:
    """Read the full request body, raising ``BodyTooLarge`` past ``limit`` bytes."""
    chunks: list[bytes] = []
    size = 0
    async for chunk in stream_body(receive):
        size += len(chunk)
        if size > limit:
            raise BodyTooLarge(f"Request body exceeds {limit} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def send_json(
    send: Send,
    status: int,
    payload: Any,
    *,
    headers: tuple[tuple[str, str], ...] = (),
) -> None:
    """Translate a JSON payload into ASGI send() calls."""
    body = json.dumps(payload).encode("utf-8")
    raw_headers: list[tuple[bytes, bytes]] = [
        (b"content-type", b"application/json"),
        (b"content-length", str(len(body)).encode("latin-1")),
    ]
    for name, value in headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
