"""
Supply channels for one capability type.

A capability may have a queue of one-shot objects, a persistent object and
an auto-substitute generator installed at the same time. They are consulted
in that order; a drained queue falls through to the next policy.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SupplyPolicy(str, Enum):
    """Policies in precedence order."""

    QUEUED = "queued"
    PERSISTENT = "persistent"
    AUTO = "auto"


SubstituteGenerator = Callable[[type], Any]


@dataclass
class SupplyChannels:
    """
    Installed supply policies for a capability.

    Attributes:
        queued: Objects handed out once each, first in first out
        persistent: Object handed out on every request, if set
        generator: Factory for a fresh substitute per request, if set
    """

    queued: deque[Any] = field(default_factory=deque)
    persistent: Any = None
    generator: SubstituteGenerator | None = None

    def active_policy(self) -> SupplyPolicy | None:
        """Return the policy that serves the next request, if any."""
        if self.queued:
            return SupplyPolicy.QUEUED
        if self.persistent is not None:
            return SupplyPolicy.PERSISTENT
        if self.generator is not None:
            return SupplyPolicy.AUTO
        return None
