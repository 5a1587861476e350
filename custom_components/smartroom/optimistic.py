"""Optimistic mutation of single entity attributes.

A mutation applies the requested value locally before the backend confirms
it, then either adopts the backend's authoritative echo or restores the
previous value. One controller serves every attribute class (power, swing,
temperature, mode, fan speed, light level, automation state); callers only
choose the remote call and the echo fields copied back.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from .api import SessionExpiredError, SmartRoomApiError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

_LOGGER = logging.getLogger(__name__)


class MutableEntity(Protocol):
    """Any model with a stable integer id and mutable attributes."""

    id: int


class MutationOutcome(StrEnum):
    """Result of an optimistic mutation."""

    APPLIED = "applied"
    ROLLED_BACK = "rolled_back"
    REJECTED = "rejected"


def apply_snapshot(
    entity: Any,
    snapshot: Any,
    fields: Iterable[str],
    skip: frozenset[str] = frozenset(),
) -> list[str]:
    """Copy fields from an authoritative snapshot onto a local entity.

    Args:
        entity: Local model to update.
        snapshot: Model returned by the backend.
        fields: Names of the attributes to copy.
        skip: Attributes that must be left untouched.

    Returns:
        Names of the attributes whose value changed.

    """
    changed = []
    for name in fields:
        if name in skip:
            continue
        value = getattr(snapshot, name, None)
        if value is None:
            continue
        if getattr(entity, name) != value:
            setattr(entity, name, value)
            changed.append(name)
    return changed


class OptimisticMutationController:
    """Apply attribute changes speculatively and reconcile with the backend.

    Only one mutation may be in flight for a given (entity id, attribute)
    pair. A second request for the same pair is rejected without issuing a
    remote call; callers are expected to disable the control meanwhile.
    """

    def __init__(self, on_update: Callable[[], None] | None = None) -> None:
        """Initialize the controller.

        Args:
            on_update: Called synchronously after every local state change.

        """
        self._in_flight: set[tuple[int, str]] = set()
        self._on_update = on_update

    def is_in_flight(self, entity_id: int, attribute: str) -> bool:
        return (entity_id, attribute) in self._in_flight

    def in_flight_attributes(self, entity_id: int) -> frozenset[str]:
        """Return the attributes of an entity with a mutation in flight."""
        return frozenset(
            attribute for key_id, attribute in self._in_flight if key_id == entity_id
        )

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update()

    async def async_mutate(
        self,
        entity: MutableEntity,
        attribute: str,
        desired_value: Any,
        remote_call: Callable[[int, Any], Awaitable[Any | None]],
        echo_fields: Iterable[str] | None = None,
    ) -> MutationOutcome:
        """Change one attribute optimistically.

        Args:
            entity: Local model owning the attribute.
            attribute: Attribute name on the model.
            desired_value: Value requested by the user.
            remote_call: Coroutine function called as
                remote_call(entity.id, desired_value); returns the backend's
                snapshot of the entity, or None when the backend does not
                echo it.
            echo_fields: Snapshot fields copied back on success. Defaults to
                the mutated attribute only.

        Returns:
            APPLIED when the backend accepted the change, ROLLED_BACK when it
            failed and the previous value was restored, REJECTED when another
            mutation of the same pair was still in flight.

        Raises:
            SessionExpiredError: If the session expired during the call. The
                previous value is restored before the error propagates.

        """
        key = (entity.id, attribute)
        if key in self._in_flight:
            _LOGGER.debug(
                "Rejecting %s change for entity %s: mutation in flight",
                attribute,
                entity.id,
            )
            return MutationOutcome.REJECTED

        previous_value = getattr(entity, attribute)
        setattr(entity, attribute, desired_value)
        self._in_flight.add(key)
        self._notify()

        try:
            snapshot = await remote_call(entity.id, desired_value)
        except SessionExpiredError:
            setattr(entity, attribute, previous_value)
            _LOGGER.warning(
                "Session expired while changing %s of entity %s", attribute, entity.id
            )
            raise
        except SmartRoomApiError as err:
            setattr(entity, attribute, previous_value)
            _LOGGER.warning(
                "Failed to change %s of entity %s, reverted to %s: %s",
                attribute,
                entity.id,
                previous_value,
                err,
            )
            return MutationOutcome.ROLLED_BACK
        except Exception:
            setattr(entity, attribute, previous_value)
            _LOGGER.exception(
                "Unexpected error while changing %s of entity %s", attribute, entity.id
            )
            return MutationOutcome.ROLLED_BACK
        else:
            if snapshot is not None:
                apply_snapshot(entity, snapshot, echo_fields or (attribute,))
            _LOGGER.debug(
                "Changed %s of entity %s to %s",
                attribute,
                entity.id,
                getattr(entity, attribute),
            )
            return MutationOutcome.APPLIED
        finally:
            self._in_flight.discard(key)
            self._notify()

    async def async_mutate_level(
        self,
        entity: MutableEntity,
        level: int,
        level_call: Callable[[int, Any], Awaitable[Any | None]],
        activate_call: Callable[[int, Any], Awaitable[Any | None]],
        level_attribute: str = "level",
        active_attribute: str = "is_active",
        echo_fields: Iterable[str] | None = None,
    ) -> MutationOutcome:
        """Change a brightness level and activate the device if needed.

        When the level update is applied, the new level is positive and the
        device was inactive beforehand, a second mutation sets the active
        flag. The two mutations are independent: a failed activation does
        not undo the level change.

        Returns:
            Outcome of the level mutation.

        """
        was_active = bool(getattr(entity, active_attribute))

        outcome = await self.async_mutate(
            entity, level_attribute, level, level_call, echo_fields
        )
        if outcome is not MutationOutcome.APPLIED or level <= 0 or was_active:
            return outcome

        if getattr(entity, active_attribute):
            # The level echo already reported the device as active.
            return outcome

        activation = await self.async_mutate(
            entity, active_attribute, True, activate_call, echo_fields
        )
        if activation is not MutationOutcome.APPLIED:
            _LOGGER.debug(
                "Activation after level change of entity %s ended as %s",
                entity.id,
                activation,
            )
        return outcome

    def merge_remote(
        self, entity: MutableEntity, snapshot: Any, fields: Iterable[str]
    ) -> list[str]:
        """Merge polled backend state without touching in-flight attributes.

        Returns:
            Names of the attributes whose value changed.

        """
        return apply_snapshot(
            entity, snapshot, fields, skip=self.in_flight_attributes(entity.id)
        )
