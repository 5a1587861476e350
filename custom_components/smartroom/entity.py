"""Base entity for SmartRoom devices and automations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from homeassistant.helpers.entity import Entity

from .api import SessionExpiredError
from .optimistic import MutationOutcome, OptimisticMutationController

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .coordinator import SmartRoomCoordinator, SmartRoomData

_LOGGER = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT")


class SmartRoomEntity(Entity, Generic[_ModelT]):
    """Entity owning one backend model and its optimistic mutations.

    The entity keeps its own copy of the model. Coordinator refreshes are
    merged into it field by field, except for attributes that currently have
    a mutation in flight.
    """

    _attr_has_entity_name = True
    _attr_should_poll = False

    _unique_id_prefix = "entity"
    _polled_fields: tuple[str, ...] = ()

    def __init__(self, coordinator: SmartRoomCoordinator, model: _ModelT) -> None:
        """Initialize the entity.

        Args:
            coordinator: Coordinator providing refreshed models.
            model: Model loaded from the backend; owned by this entity.

        """
        self._coordinator = coordinator
        self._model = model
        self._attr_unique_id = f"{self._unique_id_prefix}_{model.id}"
        self._attr_name = model.name
        self._controller = OptimisticMutationController(on_update=self._handle_local_update)
        self._coordinator_listener_unsub: Callable[[], None] | None = None
        self._present = True
        self._removed = False

    @property
    def model(self) -> _ModelT:
        return self._model

    @property
    def controller(self) -> OptimisticMutationController:
        return self._controller

    @property
    def available(self) -> bool:
        return self._present and self._coordinator.last_update_success

    def _lookup(self, data: SmartRoomData) -> _ModelT | None:
        """Return this entity's model from coordinator data."""
        raise NotImplementedError

    async def async_added_to_hass(self) -> None:
        """Subscribe to coordinator updates."""
        await super().async_added_to_hass()
        self._coordinator_listener_unsub = self._coordinator.async_add_listener(
            self._handle_coordinator_update
        )
        self._update_from_coordinator()

    async def async_will_remove_from_hass(self) -> None:
        """Unsubscribe from coordinator updates."""
        await super().async_will_remove_from_hass()
        self._removed = True

        if self._coordinator_listener_unsub is not None:
            self._coordinator_listener_unsub()
            self._coordinator_listener_unsub = None

    def _handle_coordinator_update(self) -> None:
        self._update_from_coordinator()
        self._handle_local_update()

    def _update_from_coordinator(self) -> None:
        """Merge the coordinator's copy of the model into ours."""
        if not self._coordinator.data:
            return

        snapshot = self._lookup(self._coordinator.data)
        self._present = snapshot is not None
        if snapshot is None:
            _LOGGER.debug("%s: no longer reported by the backend", self._model.name)
            return

        changed = self._controller.merge_remote(self._model, snapshot, self._polled_fields)
        if changed:
            _LOGGER.debug("%s: refreshed %s", self._model.name, ", ".join(changed))

    def _handle_local_update(self) -> None:
        # A result arriving after removal still updates the model, not HA.
        if self._removed:
            return
        self.async_write_ha_state()

    async def _async_mutate(
        self,
        attribute: str,
        value: Any,
        remote_call: Callable[[int, Any], Awaitable[Any | None]],
        echo_fields: Iterable[str] | None = None,
    ) -> MutationOutcome | None:
        """Run an optimistic mutation of this entity's model.

        Returns:
            The mutation outcome, or None if the session expired.

        """
        try:
            return await self._controller.async_mutate(
                self._model, attribute, value, remote_call, echo_fields
            )
        except SessionExpiredError:
            _LOGGER.warning(
                "Session expired while updating %s. Re-authentication required.",
                self._model.name,
            )
            return None
