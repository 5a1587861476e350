"""Climate entities for SmartRoom air-conditioners.

Every control (power, target temperature, mode, fan speed, swing) is an
optimistic mutation of a single attribute: the new value is shown at once,
and replaced by the backend's echo or reverted when the call fails.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from functools import partial
from typing import TYPE_CHECKING, Any

from homeassistant.components.climate import (
    ClimateEntity,
    ClimateEntityFeature,
    HVACMode,
)
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature

from . import api
from .const import (
    AC_ECHO_FIELDS,
    AC_POLLED_FIELDS,
    ATTR_ROOM_ID,
    DOMAIN,
    FAN_MODE_MAP,
    FAN_MODE_REVERSE_MAP,
    HVAC_MODE_MAP,
    HVAC_MODE_REVERSE_MAP,
    MAX_TEMPERATURE,
    MIN_TEMPERATURE,
    SWING_MODE_MAP,
    SWING_MODE_REVERSE_MAP,
)
from .entity import SmartRoomEntity
from .models import AirConditioner
from .optimistic import MutationOutcome

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

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
    """Set up climate entities for SmartRoom air-conditioners."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    entities = [
        SmartRoomClimateEntity(coordinator, replace(ac))
        for ac in coordinator.data.air_conditioners.values()
    ]
    async_add_entities(entities)


def clamp_temperature(value: float) -> int:
    """Round a requested temperature and clamp it to the device range."""
    return max(MIN_TEMPERATURE, min(MAX_TEMPERATURE, round(value)))


class SmartRoomClimateEntity(SmartRoomEntity[AirConditioner], ClimateEntity):
    """Climate entity for a SmartRoom air-conditioner."""

    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_target_temperature_step = 1
    _attr_min_temp = MIN_TEMPERATURE
    _attr_max_temp = MAX_TEMPERATURE
    _attr_hvac_modes = [HVACMode.OFF, *HVAC_MODE_MAP]
    _attr_fan_modes = list(FAN_MODE_MAP)
    _attr_swing_modes = list(SWING_MODE_MAP)
    _attr_supported_features = (
        ClimateEntityFeature.TARGET_TEMPERATURE
        | ClimateEntityFeature.FAN_MODE
        | ClimateEntityFeature.SWING_MODE
        | ClimateEntityFeature.TURN_OFF
        | ClimateEntityFeature.TURN_ON
    )

    _unique_id_prefix = f"{DOMAIN}_ac"
    _polled_fields = AC_POLLED_FIELDS

    def __init__(self, coordinator: SmartRoomCoordinator, device: AirConditioner) -> None:
        """Initialize the climate entity.

        Args:
            coordinator: Coordinator providing refreshed device state.
            device: Air-conditioner model owned by this entity.

        """
        super().__init__(coordinator, device)

    def _lookup(self, data: SmartRoomData) -> AirConditioner | None:
        return data.air_conditioners.get(self._model.id)

    @property
    def hvac_mode(self) -> HVACMode:
        """Return OFF when powered down, otherwise the operating mode."""
        if not self._model.power:
            return HVACMode.OFF
        hvac_mode = HVAC_MODE_REVERSE_MAP.get(self._model.mode)
        if hvac_mode is None:
            _LOGGER.warning("Unknown mode for %s: %s", self._model.name, self._model.mode)
            return HVACMode.AUTO
        return hvac_mode

    @property
    def target_temperature(self) -> float:
        return self._model.temperature

    @property
    def fan_mode(self) -> str:
        return FAN_MODE_REVERSE_MAP.get(self._model.fan_speed, FAN_MODE_REVERSE_MAP[0])

    @property
    def swing_mode(self) -> str:
        return SWING_MODE_REVERSE_MAP[self._model.swing]

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {ATTR_ROOM_ID: self._model.room_id}

    def _remote(
        self, call: Callable[..., Awaitable[AirConditioner]]
    ) -> Callable[[int, Any], Awaitable[AirConditioner]]:
        return partial(call, self._coordinator.pipeline)

    async def _async_mutate_ac(
        self,
        attribute: str,
        value: Any,
        call: Callable[..., Awaitable[AirConditioner]],
    ) -> MutationOutcome | None:
        return await self._async_mutate(
            attribute, value, self._remote(call), AC_ECHO_FIELDS[attribute]
        )

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Set the HVAC mode, powering the device on or off as needed.

        Args:
            hvac_mode: The HVAC mode to set.

        """
        if hvac_mode == HVACMode.OFF:
            await self.async_turn_off()
            return

        mode = HVAC_MODE_MAP.get(hvac_mode)
        if mode is None:
            _LOGGER.warning("Unsupported HVAC mode for %s: %s", self._model.name, hvac_mode)
            return

        outcome = await self._async_mutate_ac("mode", mode, api.async_set_ac_mode)
        if outcome is MutationOutcome.APPLIED and not self._model.power:
            await self.async_turn_on()

    async def async_set_temperature(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Set the target temperature, clamped to the device range.

        Args:
            **kwargs: Keyword arguments containing temperature data.

        """
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return

        await self._async_mutate_ac(
            "temperature", clamp_temperature(temperature), api.async_set_ac_temperature
        )

    async def async_set_fan_mode(self, fan_mode: str) -> None:
        """Set the fan speed.

        Args:
            fan_mode: "auto" or a speed from "1" to "5".

        """
        fan_speed = FAN_MODE_MAP.get(fan_mode)
        if fan_speed is None:
            _LOGGER.warning("Unsupported fan mode for %s: %s", self._model.name, fan_mode)
            return

        await self._async_mutate_ac("fan_speed", fan_speed, api.async_set_ac_fan_speed)

    async def async_set_swing_mode(self, swing_mode: str) -> None:
        """Set the swing mode.

        Args:
            swing_mode: "on" or "off".

        """
        swing = SWING_MODE_MAP.get(swing_mode)
        if swing is None:
            _LOGGER.warning("Unsupported swing mode for %s: %s", self._model.name, swing_mode)
            return

        await self._async_mutate_ac("swing", swing, api.async_set_ac_swing)

    async def async_turn_on(self) -> None:
        """Power the device on."""
        await self._async_mutate_ac("power", True, api.async_set_ac_power)

    async def async_turn_off(self) -> None:
        """Power the device off."""
        await self._async_mutate_ac("power", False, api.async_set_ac_power)
