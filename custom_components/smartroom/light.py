"""Light entities for SmartRoom dimmable lights."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from functools import partial
from typing import TYPE_CHECKING, Any

from homeassistant.components.light import ATTR_BRIGHTNESS, ColorMode, LightEntity
from homeassistant.util.color import brightness_to_value, value_to_brightness

from . import api
from .api import SessionExpiredError
from .const import (
    ATTR_ROOM_ID,
    DOMAIN,
    LIGHT_ECHO_FIELDS,
    MAX_LIGHT_LEVEL,
    MIN_LIGHT_LEVEL,
)
from .entity import SmartRoomEntity
from .models import Light

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import SmartRoomCoordinator, SmartRoomData

_LOGGER = logging.getLogger(__name__)

BRIGHTNESS_SCALE = (MIN_LIGHT_LEVEL, MAX_LIGHT_LEVEL)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up light entities for SmartRoom lights."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    entities = [
        SmartRoomLight(coordinator, replace(light))
        for light in coordinator.data.lights.values()
    ]
    async_add_entities(entities)


def brightness_to_level(brightness: int) -> int:
    """Convert a 0-255 brightness to a backend level of 1-100."""
    level = math.ceil(brightness_to_value(BRIGHTNESS_SCALE, brightness))
    return max(MIN_LIGHT_LEVEL, min(MAX_LIGHT_LEVEL, level))


class SmartRoomLight(SmartRoomEntity[Light], LightEntity):
    """Light entity for a SmartRoom light.

    Turning on with a brightness is a compound mutation: the level is set
    first and, if the light was off, it is then switched on.
    """

    _attr_color_mode = ColorMode.BRIGHTNESS
    _attr_supported_color_modes = {ColorMode.BRIGHTNESS}

    _unique_id_prefix = f"{DOMAIN}_light"
    _polled_fields = LIGHT_ECHO_FIELDS

    def __init__(self, coordinator: SmartRoomCoordinator, light: Light) -> None:
        super().__init__(coordinator, light)

    def _lookup(self, data: SmartRoomData) -> Light | None:
        return data.lights.get(self._model.id)

    @property
    def is_on(self) -> bool:
        return self._model.is_active

    @property
    def brightness(self) -> int | None:
        if self._model.level <= 0:
            return None
        return value_to_brightness(BRIGHTNESS_SCALE, self._model.level)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {ATTR_ROOM_ID: self._model.room_id}

    async def async_turn_on(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Turn the light on, optionally at a given brightness."""
        pipeline = self._coordinator.pipeline

        if ATTR_BRIGHTNESS not in kwargs:
            await self._async_mutate(
                "is_active",
                True,
                partial(api.async_set_light_active, pipeline),
                LIGHT_ECHO_FIELDS,
            )
            return

        level = brightness_to_level(kwargs[ATTR_BRIGHTNESS])
        try:
            await self._controller.async_mutate_level(
                self._model,
                level,
                partial(api.async_set_light_level, pipeline),
                partial(api.async_set_light_active, pipeline),
                echo_fields=LIGHT_ECHO_FIELDS,
            )
        except SessionExpiredError:
            _LOGGER.warning(
                "Session expired while updating %s. Re-authentication required.",
                self._model.name,
            )

    async def async_turn_off(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Turn the light off."""
        await self._async_mutate(
            "is_active",
            False,
            partial(api.async_set_light_active, self._coordinator.pipeline),
            LIGHT_ECHO_FIELDS,
        )
