"""Test utilities for switchboard bots.

Provides an in-memory recording interface and a webhook test client::

    from switchboard.testing import RecordingInterface, WebhookClient
"""

from switchboard.testing.client import WebhookClient, WebhookResponse
from switchboard.testing.interface import RecordingInterface

__all__ = [
    "RecordingInterface",
    "WebhookClient",
    "WebhookResponse",
]
