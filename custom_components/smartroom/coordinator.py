"""Coordinator for SmartRoom integration."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import api
from .const import DEFAULT_SCAN_INTERVAL, DOMAIN

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .models import (
        AirConditioner,
        Automation,
        Floor,
        Light,
        PowerSensor,
        Room,
        TemperatureSensor,
    )

_LOGGER = logging.getLogger(__name__)


@dataclass
class SmartRoomData:
    """Snapshot of the building as loaded from the backend."""

    floors: dict[int, Floor] = field(default_factory=dict)
    rooms: dict[int, Room] = field(default_factory=dict)
    lights: dict[int, Light] = field(default_factory=dict)
    air_conditioners: dict[int, AirConditioner] = field(default_factory=dict)
    automations: dict[int, Automation] = field(default_factory=dict)
    temperature_sensors: dict[int, TemperatureSensor] = field(default_factory=dict)
    power_sensors: dict[int, PowerSensor] = field(default_factory=dict)


class SmartRoomCoordinator(DataUpdateCoordinator[SmartRoomData]):
    """Coordinator that loads floors, rooms, devices, sensors and automations."""

    def __init__(
        self,
        hass: HomeAssistant,
        pipeline: api.RequestPipeline,
        scan_interval: int = DEFAULT_SCAN_INTERVAL,
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: Home Assistant instance.
            pipeline: Authenticated request pipeline.
            scan_interval: Seconds between refreshes.

        """
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=timedelta(seconds=scan_interval),
        )
        self.pipeline = pipeline
        self.data = SmartRoomData()

    async def _async_update_data(self) -> SmartRoomData:
        try:
            floors = await api.async_get_floors(self.pipeline)
            room_lists = await asyncio.gather(
                *(api.async_get_rooms_by_floor(self.pipeline, floor.id) for floor in floors)
            )
            rooms = [room for room_list in room_lists for room in room_list]
            ac_lists = await asyncio.gather(
                *(
                    api.async_get_air_conditioners_by_room(self.pipeline, room.id)
                    for room in rooms
                )
            )
            temperature_lists = await asyncio.gather(
                *(
                    api.async_get_temperature_sensors_by_room(self.pipeline, room.id)
                    for room in rooms
                )
            )
            power_lists = await asyncio.gather(
                *(api.async_get_power_sensors_by_room(self.pipeline, room.id) for room in rooms)
            )
            lights = await api.async_get_lights(self.pipeline)
            automations = await api.async_get_automations(self.pipeline)
        except api.SessionExpiredError as err:
            # Re-authentication is started by the session expiry listener.
            raise UpdateFailed(f"Session expired while loading data: {err}") from err
        except api.NetworkError as err:
            raise UpdateFailed(f"Connection error while loading data: {err}") from err
        except api.SmartRoomApiError as err:
            raise UpdateFailed(f"API error while loading data: {err}") from err

        data = SmartRoomData(
            floors={floor.id: floor for floor in floors},
            rooms={room.id: room for room in rooms},
            lights={light.id: light for light in lights},
            air_conditioners={ac.id: ac for ac_list in ac_lists for ac in ac_list},
            automations={automation.id: automation for automation in automations},
            temperature_sensors={
                sensor.id: sensor for sensors in temperature_lists for sensor in sensors
            },
            power_sensors={sensor.id: sensor for sensors in power_lists for sensor in sensors},
        )
        _LOGGER.debug(
            "Loaded %d floors, %d rooms, %d lights, %d air-conditioners, %d sensors, "
            "%d automations",
            len(data.floors),
            len(data.rooms),
            len(data.lights),
            len(data.air_conditioners),
            len(data.temperature_sensors) + len(data.power_sensors),
            len(data.automations),
        )
        return data
