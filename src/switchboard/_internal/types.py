"""Shared type aliases used across switchboard modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Response body — called as body(input, output), sync or async
ResponseBody: TypeAlias = Callable[..., Any]

# Lifecycle hook — variable signature, sync or async
Hook: TypeAlias = Callable[..., Any]
