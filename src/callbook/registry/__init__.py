"""
Registry module for callbook.

Maps textual ids to live objects so references survive a trip through the
text form, and supplies objects for capability types under three policies.

Example:
    from callbook.registry import ObjectRegistry

    registry = ObjectRegistry()
    registry.supply_queued(Clock, frozen_clock, "clock")
    assert registry.request(Clock) is frozen_clock
    assert registry.resolve("clock") is frozen_clock
"""

from callbook.registry.channels import SubstituteGenerator, SupplyChannels, SupplyPolicy
from callbook.registry.objects import ObjectRegistry

__all__ = [
    "ObjectRegistry",
    "SubstituteGenerator",
    "SupplyChannels",
    "SupplyPolicy",
]
