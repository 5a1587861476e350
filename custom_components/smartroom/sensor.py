"""Sensor entities for SmartRoom temperature and power meters."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.const import UnitOfEnergy, UnitOfPower, UnitOfTemperature

from .const import (
    ATTR_ROOM_ID,
    DOMAIN,
    POWER_SENSOR_POLLED_FIELDS,
    TEMPERATURE_SENSOR_POLLED_FIELDS,
)
from .entity import SmartRoomEntity
from .models import PowerSensor, TemperatureSensor

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
    """Set up sensor entities for room temperature and power meters.

    Each power meter provides two entities: the current draw and the energy
    counter.
    """
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    entities: list[SensorEntity] = [
        SmartRoomTemperatureSensor(coordinator, replace(sensor))
        for sensor in coordinator.data.temperature_sensors.values()
    ]
    for sensor in coordinator.data.power_sensors.values():
        entities.append(SmartRoomPowerSensor(coordinator, replace(sensor)))
        entities.append(SmartRoomEnergySensor(coordinator, replace(sensor)))

    _LOGGER.debug("Adding %d SmartRoom sensors", len(entities))
    async_add_entities(entities)


class SmartRoomTemperatureSensor(SmartRoomEntity[TemperatureSensor], SensorEntity):
    """Current temperature reported by a room sensor."""

    _attr_device_class = SensorDeviceClass.TEMPERATURE
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = UnitOfTemperature.CELSIUS

    _unique_id_prefix = f"{DOMAIN}_temperature"
    _polled_fields = TEMPERATURE_SENSOR_POLLED_FIELDS

    def _lookup(self, data: SmartRoomData) -> TemperatureSensor | None:
        return data.temperature_sensors.get(self._model.id)

    @property
    def native_value(self) -> float | None:
        return self._model.current_value

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {ATTR_ROOM_ID: self._model.room_id}


class SmartRoomPowerSensor(SmartRoomEntity[PowerSensor], SensorEntity):
    """Instantaneous power draw measured by a room power meter."""

    _attr_device_class = SensorDeviceClass.POWER
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = UnitOfPower.WATT

    _unique_id_prefix = f"{DOMAIN}_power"
    _polled_fields = POWER_SENSOR_POLLED_FIELDS

    def _lookup(self, data: SmartRoomData) -> PowerSensor | None:
        return data.power_sensors.get(self._model.id)

    @property
    def native_value(self) -> float | None:
        return self._model.current_watt

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {ATTR_ROOM_ID: self._model.room_id}


class SmartRoomEnergySensor(SmartRoomPowerSensor):
    """Energy counted by a room power meter."""

    _attr_device_class = SensorDeviceClass.ENERGY
    _attr_state_class = SensorStateClass.TOTAL_INCREASING
    _attr_native_unit_of_measurement = UnitOfEnergy.WATT_HOUR

    _unique_id_prefix = f"{DOMAIN}_energy"

    def __init__(self, coordinator: SmartRoomCoordinator, sensor: PowerSensor) -> None:
        super().__init__(coordinator, sensor)
        self._attr_name = f"{sensor.name} energy"

    @property
    def native_value(self) -> float | None:
        return self._model.current_watt_hour
