"""Interfaces — adapters between messaging platforms and the core.

Usage::

    from switchboard.interfaces import HTTPScope, Interface, WebhookInterface
"""

from switchboard._internal.asgi import HTTPScope
from switchboard.interfaces.base import Interface
from switchboard.interfaces.webhook import WebhookInterface

__all__ = [
    "HTTPScope",
    "Interface",
    "WebhookInterface",
]
