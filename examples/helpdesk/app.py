"""Helpdesk — a company chat bot answering ``/help`` and ``/weather``.

The messenger POSTs every new message to the bot's outgoing webhook;
``ChatInterface`` parses ``/command text`` out of it, the router picks a
response, and replies go back through the messenger's REST API with httpx.

Demonstrates nested routes with a catch-all fallback, several messages
per route, a file attachment, a deferred (slow) reply, response bodies
that read input, and default/error responses.

Run:
    export CHAT_ACCESS_TOKEN=...
    cd examples/helpdesk && uvicorn app:app --port 8090
"""

import hashlib
import hmac
import logging
import os
import time
from pathlib import Path
from typing import Any

import anyio
import httpx

from switchboard import ConditionPack, Core, CoreConfig, DeliveryError, WebhookInterface
from switchboard.interfaces import HTTPScope
from switchboard.properties import Input, Output, OutputBundle

API_URL = "https://api.pachca.com/api/shared/v1"
OFFICE_HOURS_FILE = Path(__file__).with_name("office_hours.txt")

logger = logging.getLogger("helpdesk")


def parse_query(query: str) -> tuple[str, str]:
    """Split ``"/help working hours"`` into ``("help", "working hours")``.

    Messages that do not start with a slash have no command.
    """
    query = query.strip()
    if not query.startswith("/"):
        return "", query
    command, _, text = query[1:].partition(" ")
    return command, text.strip()


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class ChatInterface(WebhookInterface):
    """Messenger interface: webhook in, REST API out.

    Input properties: ``chat_query`` (whole message), ``chat_command``
    (without the slash), ``chat_text`` (after the command), and
    ``chat_entity_id`` (the conversation to answer in).

    Output properties: ``chat_text`` and ``chat_file_path`` (a local
    file uploaded with the message).
    """

    name = "chat"

    def __init__(
        self,
        core: Core,
        access_token: str,
        *,
        api_url: str = API_URL,
        signing_secret: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.signing_secret = signing_secret
        self.client = client or httpx.AsyncClient(timeout=10.0)
        super().__init__(core)
        if client is None:
            core.on_shutdown(self.client.aclose)

    def setup(self, core: Core) -> None:
        self.register_input("chat_query", lambda event: event["query"], description="Whole message")
        self.register_input("chat_command", lambda event: event["command"], description="Command")
        self.register_input("chat_text", lambda event: event["text"], description="After command")
        self.register_input("chat_entity_id", lambda event: event["entity_id"])
        self.register_output("chat_text", str, description="Message text")
        self.register_output("chat_file_path", str, description="Local file to attach")

        pack = ConditionPack("chat")
        pack.add("command", lambda input, command: input["chat_command"] == command)
        pack.add("text", lambda input, text: input["chat_text"] == text)
        self.register_pack(pack)

    def normalize(self, event: Any) -> dict[str, Any]:
        query = str(event.get("content") or "")
        command, text = parse_query(query)
        return {
            "query": query,
            "command": command,
            "text": text,
            "entity_id": event.get("entity_id"),
            "body": query,
        }

    def authorize(self, request: HTTPScope, body: bytes) -> bool:
        if self.signing_secret is None:
            return True
        signature = request.header("Pachca-Signature") or ""
        expected = hmac.new(self.signing_secret.encode(), body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(signature.encode(), expected.encode())

    async def deliver(self, bundle: OutputBundle) -> None:
        if bundle.input is None:
            raise DeliveryError(self.name, "no conversation to answer in")
        message: dict[str, Any] = {
            "entity_id": bundle.input["chat_entity_id"],
            "content": bundle.get("chat_text") or bundle.get("body", ""),
        }
        try:
            if "chat_file_path" in bundle:
                message["files"] = [await self._upload(Path(bundle["chat_file_path"]))]
            response = await self.client.post(
                f"{self.api_url}/messages",
                json={"message": message},
                headers=self._headers(),
            )
            response.raise_for_status()
        except (httpx.HTTPError, OSError) as exc:
            raise DeliveryError(self.name, str(exc)) from exc

    async def _upload(self, path: Path) -> dict[str, Any]:
        content = await anyio.Path(path).read_bytes()
        response = await self.client.post(
            f"{self.api_url}/uploads",
            files={"file": (path.name, content)},
            headers=self._headers(),
        )
        response.raise_for_status()
        return {"key": response.json()["key"], "name": path.name, "file_type": "file"}

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


# ---------------------------------------------------------------------------
# Bot
# ---------------------------------------------------------------------------


HELP_TOPICS = """I can't help you with this information.
Available help topics (write after /help command):

working hours
office 1 address
"""


def create_bot(
    access_token: str,
    *,
    client: httpx.AsyncClient | None = None,
    signing_secret: str | None = None,
    slow_reply_delay: float = 5.0,
) -> ChatInterface:
    """Build the core, the chat interface, and the routes."""
    core = Core(CoreConfig(max_deferred=8), loggers=[logger])
    chat = ChatInterface(core, access_token, signing_secret=signing_secret, client=client)

    core.router.default.respond(
        chat_text="Hey! It seems I don't yet know how to respond to that. But I will, someday! ;)"
    )
    core.router.error.respond(
        chat_text="Unfortunately, an error occurred :( Please be patient while we fix it!"
    )

    with core.router.configure() as routes:
        with routes.on("chat", command="help") as help_:
            with help_.on("chat", text="working hours") as hours:
                hours.respond(chat_text="Working hours for our company: 10.00 AM - 7.00 PM")
                hours.respond(
                    chat_text="Remember to be in time for work!",
                    chat_file_path=str(OFFICE_HOURS_FILE),
                )

                @hours.responder(deferred=True)
                def reminder(input: Input, output: Output) -> None:
                    time.sleep(slow_reply_delay)
                    output["chat_text"] = (
                        "Also this not so useful message is sent after a while"
                    )

            help_.on("chat", text="office 1 address").respond(
                chat_text="Office 1 address is: Budapest, Andrássy út"
            )
            help_.on("flow", "any").respond(chat_text=HELP_TOPICS)

        @routes.on("chat", command="weather").responder()
        def weather(input: Input, output: Output) -> None:
            city = input["chat_text"]
            if not city:
                output["chat_text"] = "I can't parse weather without name of place!"
            else:
                output["chat_text"] = f"Parsed weather for: {city}"

    return chat


access_token = os.environ.get("CHAT_ACCESS_TOKEN", "")
if not access_token:
    logger.warning("CHAT_ACCESS_TOKEN is not set; replies will be rejected by the API")

app = create_bot(access_token, signing_secret=os.environ.get("CHAT_SIGNING_SECRET"))
