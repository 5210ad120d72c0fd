"""
Object identity registry.

The registry maps short textual ids to live objects so a call record can
say ``<id:paymentGateway>`` instead of trying to serialize the gateway.
Lookups from object to id go by identity, never by equality: two equal
objects are still two different collaborators.

Design:
    - One registry per test case, passed explicitly; there is no global
    - Ids are unique; registering the same instance again is a no-op
    - Supply channels hand out objects for a capability type and register
      them on the way out
    - clear() is the test-boundary hook and must run even when a test fails
"""

import inspect
import logging
from collections.abc import Iterator
from typing import Any

from callbook.errors import (
    DuplicateObjectIdError,
    NoSupplyChannelError,
    ObjectNotFoundError,
    SubstituteReusedError,
)
from callbook.registry.channels import (
    SubstituteGenerator,
    SupplyChannels,
    SupplyPolicy,
)

logger = logging.getLogger(__name__)


def _capability_name(capability: type) -> str:
    return getattr(capability, "__name__", repr(capability))


def _instance_of(obj: Any, capability: type) -> bool:
    try:
        return isinstance(obj, capability)
    except TypeError:
        return False


class ObjectRegistry:
    """
    Per-session map from id to live object, plus supply channels.

    Usage:
        registry = ObjectRegistry()
        registry.register(gateway, "gateway")
        registry.supply_queued(Clock, frozen_clock)
        clock = registry.request(Clock)

    Attributes:
        _objects_by_id: id -> object
        _ids_by_identity: id(object) -> id
        _channels: capability -> installed supply channels
        _capability_by_id: ids handed out through a capability's channels
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._objects_by_id: dict[str, Any] = {}
        self._ids_by_identity: dict[int, str] = {}
        self._channels: dict[type, SupplyChannels] = {}
        self._capability_by_id: dict[str, type] = {}
        self._next_auto_id = 1

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, obj: Any, object_id: str | None = None) -> str:
        """
        Register an object and return its id.

        Registering an instance that is already registered returns its
        existing id, whatever ``object_id`` says.

        Args:
            obj: The object to register
            object_id: Id to use; ``TypeName_n`` is generated when omitted

        Returns:
            The object's id

        Raises:
            ValueError: If obj is None or the id is empty or unprintable
            DuplicateObjectIdError: If the id belongs to another object
        """
        if obj is None:
            msg = "Cannot register None as an object"
            raise ValueError(msg)

        existing = self._ids_by_identity.get(id(obj))
        if existing is not None:
            return existing

        if object_id is None:
            object_id = self._generate_id(type(obj).__name__)
        else:
            self._validate_id(object_id)
            if object_id in self._objects_by_id:
                raise DuplicateObjectIdError(object_id=object_id)

        self._objects_by_id[object_id] = obj
        self._ids_by_identity[id(obj)] = object_id
        logger.debug("Registered %s as %s", type(obj).__name__, object_id)
        return object_id

    def resolve(self, object_id: str) -> Any:
        """
        Look up an object by id.

        Raises:
            ObjectNotFoundError: If no object has that id
        """
        try:
            return self._objects_by_id[object_id]
        except KeyError:
            raise ObjectNotFoundError(object_id=object_id) from None

    def get(self, object_id: str, default: Any = None) -> Any:
        """Look up an object by id, returning ``default`` if absent."""
        return self._objects_by_id.get(object_id, default)

    def lookup_id(self, obj: Any) -> str | None:
        """Return the id of this exact instance, or None."""
        if obj is None:
            return None
        return self._ids_by_identity.get(id(obj))

    def is_registered(self, obj: Any) -> bool:
        """Check whether this exact instance is registered."""
        return self.lookup_id(obj) is not None

    def ids(self) -> list[str]:
        """List registered ids in registration order."""
        return list(self._objects_by_id)

    # -------------------------------------------------------------------------
    # Supply channels
    # -------------------------------------------------------------------------

    def supply_queued(self, capability: type, obj: Any, object_id: str | None = None) -> None:
        """
        Queue an object to be handed out once for ``capability``.

        With an explicit id the object is registered immediately; otherwise
        it is registered when it is handed out.
        """
        if obj is None:
            msg = "Cannot supply None"
            raise ValueError(msg)
        if object_id is not None:
            self.register(obj, object_id)
        self._channels_for(capability).queued.append(obj)

    def supply_persistent(self, capability: type, obj: Any, object_id: str | None = None) -> None:
        """Hand out ``obj`` for every request of ``capability``."""
        if obj is None:
            msg = "Cannot supply None"
            raise ValueError(msg)
        if object_id is not None:
            self.register(obj, object_id)
        self._channels_for(capability).persistent = obj

    def supply_auto(self, capability: type, generator: SubstituteGenerator) -> None:
        """
        Synthesize a fresh substitute for every request of ``capability``.

        Args:
            capability: The capability type
            generator: Called with the capability, returns a new instance
        """
        if not callable(generator):
            msg = f"Substitute generator must be callable, got {generator!r}"
            raise TypeError(msg)
        self._channels_for(capability).generator = generator

    def has_channel(self, capability: type) -> bool:
        """Check whether any supply policy is installed for ``capability``."""
        channels = self._channels.get(capability)
        return channels is not None and channels.active_policy() is not None

    def request(self, capability: type, *args: Any, **kwargs: Any) -> Any:
        """
        Produce the next object for ``capability``.

        Precedence: queued > persistent > auto-substitute > construct
        ``capability(*args, **kwargs)`` when it is a concrete class. The
        produced object is registered if it is not already.

        Raises:
            NoSupplyChannelError: If nothing is installed and the capability
                cannot be instantiated
            SubstituteReusedError: If a generator returns a registered object
        """
        channels = self._channels.get(capability)
        policy = channels.active_policy() if channels else None
        name = _capability_name(capability)

        if policy is SupplyPolicy.AUTO:
            return self._create_substitute(capability, channels.generator)

        if policy is SupplyPolicy.QUEUED:
            obj = channels.queued.popleft()
        elif policy is SupplyPolicy.PERSISTENT:
            obj = channels.persistent
        else:
            obj = self._instantiate(capability, args, kwargs)

        object_id = self.register(obj)
        self._capability_by_id.setdefault(object_id, capability)
        logger.debug("Supplied %s for %s via %s", object_id, name, policy.value if policy else "constructor")
        return obj

    def clear(self, capability: type | None = None) -> None:
        """
        Remove one capability's channels and objects, or everything.

        Args:
            capability: Capability to clear; None empties the whole registry
                and restarts generated ids at 1
        """
        if capability is None:
            self._objects_by_id.clear()
            self._ids_by_identity.clear()
            self._channels.clear()
            self._capability_by_id.clear()
            self._next_auto_id = 1
            logger.debug("Cleared registry")
            return

        self._channels.pop(capability, None)
        doomed = [
            object_id
            for object_id, obj in self._objects_by_id.items()
            if self._capability_by_id.get(object_id) is capability or _instance_of(obj, capability)
        ]
        for object_id in doomed:
            obj = self._objects_by_id.pop(object_id)
            self._ids_by_identity.pop(id(obj), None)
            self._capability_by_id.pop(object_id, None)
        logger.debug("Cleared %s (%d objects)", _capability_name(capability), len(doomed))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _channels_for(self, capability: type) -> SupplyChannels:
        if capability is None:
            msg = "Capability type is required"
            raise ValueError(msg)
        return self._channels.setdefault(capability, SupplyChannels())

    def _create_substitute(self, capability: type, generator: SubstituteGenerator) -> Any:
        name = _capability_name(capability)
        obj = generator(capability)
        if obj is None:
            msg = f"Substitute generator for {name} returned None"
            raise ValueError(msg)

        existing = self.lookup_id(obj)
        if existing is not None:
            raise SubstituteReusedError(object_id=existing, capability=name)

        object_id = self.register(obj, self._generate_id(name))
        self._capability_by_id[object_id] = capability
        logger.debug("Created substitute %s for %s", object_id, name)
        return obj

    def _instantiate(self, capability: type, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        name = _capability_name(capability)
        if (
            not inspect.isclass(capability)
            or inspect.isabstract(capability)
            or getattr(capability, "_is_protocol", False)
        ):
            raise NoSupplyChannelError(capability=name)
        return capability(*args, **kwargs)

    def _generate_id(self, type_name: str) -> str:
        while True:
            candidate = f"{type_name}_{self._next_auto_id}"
            self._next_auto_id += 1
            if candidate not in self._objects_by_id:
                return candidate

    @staticmethod
    def _validate_id(object_id: str) -> None:
        if not object_id or not object_id.strip():
            msg = "Object id must be a non-empty string"
            raise ValueError(msg)
        if ">" in object_id or "\n" in object_id or "\r" in object_id:
            msg = f"Object id cannot contain '>' or line breaks: {object_id!r}"
            raise ValueError(msg)

    # -------------------------------------------------------------------------
    # Container protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        """Return the number of registered objects."""
        return len(self._objects_by_id)

    def __contains__(self, object_id: object) -> bool:
        """Check if an id is registered using 'in' operator."""
        return object_id in self._objects_by_id

    def __iter__(self) -> Iterator[str]:
        """Iterate over registered ids."""
        return iter(self._objects_by_id)

    def __repr__(self) -> str:
        """String representation of the registry."""
        ids = ", ".join(self._objects_by_id)
        return f"<ObjectRegistry: [{ids}]>"
