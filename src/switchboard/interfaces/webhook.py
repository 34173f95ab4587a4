"""Webhook receiver — an interface that is also an ASGI application.

The platform POSTs one JSON event per request to ``CoreConfig.webhook_path``.
The receiver decodes it, hands it to ``receive`` (normalize → route →
dispatch), and acknowledges with ``200 {"ok": true, "matched": ...}``.
Routing failures are already isolated by the core; anything unexpected
answers 500 and is logged, never taking the server down.

The ASGI lifespan keeps ``core.running()`` open for the life of the
server, so deferred responses have somewhere to run and are drained on
shutdown.

Subclasses implement ``setup`` and ``deliver`` like any interface and
may override ``authorize`` to check platform signatures::

    class ChatInterface(WebhookInterface):
        name = "chat"

        def setup(self, core): ...
        async def deliver(self, bundle): ...

    core = Core()
    app = ChatInterface(core)   # serve ``app`` with any ASGI server
"""

import json
import logging

from switchboard._internal.asgi import (
    BodyTooLarge,
    HTTPScope,
    Receive,
    Scope,
    Send,
    read_body,
    send_json,
)
from switchboard.interfaces.base import Interface

logger = logging.getLogger("switchboard.webhook")


class WebhookInterface(Interface):
    """Base class for interfaces fed by JSON webhooks."""

    def authorize(self, request: HTTPScope, body: bytes) -> bool:
        """Return ``False`` to reject the request with 403. Accepts all by default."""
        return True

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return
        await self._handle_http(HTTPScope.from_scope(scope), receive, send)

    async def _handle_http(self, request: HTTPScope, receive: Receive, send: Send) -> None:
        config = self.core.config
        if request.path.rstrip("/") != config.webhook_path.rstrip("/"):
            await send_json(send, 404, {"ok": False, "error": "not found"})
            return
        if request.method != "POST":
            await send_json(
                send, 405, {"ok": False, "error": "method not allowed"}, headers=(("Allow", "POST"),)
            )
            return

        try:
            body = await read_body(receive, limit=config.webhook_max_body)
        except BodyTooLarge:
            await send_json(send, 413, {"ok": False, "error": "payload too large"})
            return

        try:
            authorized = self.authorize(request, body)
        except Exception as exc:
            logger.exception("Webhook %s failed while authorizing a request", self.name)
            await self._internal_error(send, exc)
            return
        if not authorized:
            logger.warning("Rejected unauthorized webhook from %s", request.client)
            await send_json(send, 403, {"ok": False, "error": "forbidden"})
            return

        try:
            event = json.loads(body)
        except ValueError:
            logger.debug("Invalid JSON webhook body from %s", request.client)
            await send_json(send, 400, {"ok": False, "error": "invalid JSON"})
            return

        try:
            result = await self.receive(event)
        except Exception as exc:
            logger.exception("Webhook %s failed while handling an event", self.name)
            await self._internal_error(send, exc)
            return

        await send_json(send, 200, {"ok": True, "matched": result.matched})

    async def _internal_error(self, send: Send, exc: Exception) -> None:
        payload: dict[str, object] = {"ok": False, "error": "internal error"}
        if self.core.config.debug:
            payload["detail"] = f"{type(exc).__name__}: {exc}"
        await send_json(send, 500, payload)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol around ``core.running()``."""
        message = await receive()
        if message["type"] != "lifespan.startup":
            return

        started = False
        try:
            async with self.core.running():
                started = True
                await send({"type": "lifespan.startup.complete"})
                while (await receive())["type"] != "lifespan.shutdown":
                    pass
        except Exception as exc:
            logger.exception("Webhook %s lifespan failed", self.name)
            failed = "lifespan.shutdown.failed" if started else "lifespan.startup.failed"
            await send({"type": failed, "message": str(exc)})
            return

        await send({"type": "lifespan.shutdown.complete"})
