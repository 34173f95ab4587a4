"""Core configuration.

CoreConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CoreConfig:
    """Core configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = CoreConfig(max_deferred=8, webhook_path="/bot")
    """

    # Routing
    # Siblings whose conditions are all catch-all kinds (e.g. ``flow.any``)
    # are tried after every other sibling. False = literal declared order.
    catch_all_last: bool = True

    # Deferred actions
    max_deferred: int | None = None  # None = unbounded
    report_deferred_success: bool = True

    # Webhook receiver
    webhook_path: str = "/webhook"
    webhook_max_body: int = 1024 * 1024  # 1 MB

    # Error detail in webhook 500 responses
    debug: bool = False

    def __post_init__(self) -> None:
        if self.max_deferred is not None and self.max_deferred < 1:
            msg = f"max_deferred must be positive or None, got {self.max_deferred}"
            raise ValueError(msg)
        if not self.webhook_path.startswith("/"):
            msg = f"webhook_path must start with '/', got {self.webhook_path!r}"
            raise ValueError(msg)
