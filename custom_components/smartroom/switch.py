"""Switch entities enabling and disabling SmartRoom automations."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.core import callback

from . import api, schedule
from .const import (
    ATTR_AUTOMATION_ID,
    ATTR_CRON_EXPRESSION,
    ATTR_DESCRIPTION,
    ATTR_SCHEDULE,
    ATTR_TIME,
    AUTOMATION_ECHO_FIELDS,
    DOMAIN,
)
from .entity import SmartRoomEntity
from .models import Automation

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import SmartRoomCoordinator, SmartRoomData

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up automation switches, adding new ones as automations appear."""
    coordinator: SmartRoomCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    known_ids: set[int] = set()

    @callback
    def _async_add_new_automations() -> None:
        new_automations = [
            automation
            for automation_id, automation in coordinator.data.automations.items()
            if automation_id not in known_ids
        ]
        if not new_automations:
            return

        known_ids.update(automation.id for automation in new_automations)
        _LOGGER.debug("Adding %d automation switch(es)", len(new_automations))
        async_add_entities(
            [
                SmartRoomAutomationSwitch(coordinator, replace(automation))
                for automation in new_automations
            ]
        )

    _async_add_new_automations()
    entry.async_on_unload(coordinator.async_add_listener(_async_add_new_automations))


class SmartRoomAutomationSwitch(SmartRoomEntity[Automation], SwitchEntity):
    """Switch reflecting whether an automation is active."""

    _attr_icon = "mdi:calendar-clock"

    _unique_id_prefix = f"{DOMAIN}_automation"
    _polled_fields = AUTOMATION_ECHO_FIELDS

    def __init__(self, coordinator: SmartRoomCoordinator, automation: Automation) -> None:
        super().__init__(coordinator, automation)

    def _lookup(self, data: SmartRoomData) -> Automation | None:
        return data.automations.get(self._model.id)

    @property
    def is_on(self) -> bool:
        return self._model.is_active

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Expose the decoded schedule alongside the raw cron expression."""
        spec = schedule.decode(self._model.cron_expression)
        return {
            ATTR_AUTOMATION_ID: self._model.id,
            ATTR_CRON_EXPRESSION: self._model.cron_expression,
            ATTR_SCHEDULE: schedule.describe(spec),
            ATTR_TIME: schedule.format_time(spec.hour, spec.minute),
            ATTR_DESCRIPTION: self._model.description,
        }

    async def _async_update_active(self, automation_id: int, is_active: bool) -> Automation:
        # The backend only accepts full updates.
        return await api.async_update_automation(
            self._coordinator.pipeline,
            automation_id,
            name=self._model.name,
            cron_expression=self._model.cron_expression,
            is_active=is_active,
            description=self._model.description,
        )

    async def async_turn_on(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Activate the automation."""
        await self._async_mutate(
            "is_active", True, self._async_update_active, AUTOMATION_ECHO_FIELDS
        )

    async def async_turn_off(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Deactivate the automation."""
        await self._async_mutate(
            "is_active", False, self._async_update_active, AUTOMATION_ECHO_FIELDS
        )
