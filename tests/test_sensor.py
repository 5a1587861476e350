"""Tests for the SmartRoom sensor entities."""

from dataclasses import replace
from unittest.mock import Mock

import pytest
from homeassistant.components.sensor import SensorDeviceClass, SensorStateClass
from homeassistant.const import UnitOfEnergy, UnitOfPower, UnitOfTemperature

from custom_components.smartroom import api
from custom_components.smartroom.coordinator import SmartRoomData
from custom_components.smartroom.models import PowerSensor, TemperatureSensor
from custom_components.smartroom.sensor import (
    SmartRoomEnergySensor,
    SmartRoomPowerSensor,
    SmartRoomTemperatureSensor,
    async_setup_entry,
)


@pytest.fixture
def temperature_sensor() -> TemperatureSensor:
    """Create a temperature sensor reading 24.5 degrees."""
    return TemperatureSensor(id=4, name="Office temperature", room_id=10, current_value=24.5)


@pytest.fixture
def power_sensor() -> PowerSensor:
    """Create a power meter drawing 120.5 W."""
    return PowerSensor(
        id=5,
        name="Office meter",
        room_id=10,
        current_watt=120.5,
        current_watt_hour=3400.0,
    )


@pytest.fixture
def mock_coordinator(
    temperature_sensor: TemperatureSensor, power_sensor: PowerSensor
) -> Mock:
    """Create a mock coordinator holding one sensor of each kind."""
    coordinator = Mock()
    coordinator.data = SmartRoomData(
        temperature_sensors={temperature_sensor.id: replace(temperature_sensor)},
        power_sensors={power_sensor.id: replace(power_sensor)},
    )
    coordinator.pipeline = Mock(spec=api.RequestPipeline)
    coordinator.last_update_success = True
    coordinator.async_add_listener = Mock(return_value=Mock())
    return coordinator


class TestAsyncSetupEntry:
    """Tests for async_setup_entry function."""

    @pytest.mark.asyncio
    async def test_creates_entities_per_sensor(self, mock_coordinator: Mock) -> None:
        """Test that each power meter yields a power and an energy entity."""
        hass = Mock()
        hass.data = {"smartroom": {"test_entry": {"coordinator": mock_coordinator}}}
        entry = Mock()
        entry.entry_id = "test_entry"
        async_add_entities = Mock()

        await async_setup_entry(hass, entry, async_add_entities)

        entities = async_add_entities.call_args[0][0]
        assert [type(entity) for entity in entities] == [
            SmartRoomTemperatureSensor,
            SmartRoomPowerSensor,
            SmartRoomEnergySensor,
        ]
        assert len({entity.unique_id for entity in entities}) == 3


class TestSmartRoomTemperatureSensor:
    """Tests for SmartRoomTemperatureSensor."""

    def test_state(
        self, mock_coordinator: Mock, temperature_sensor: TemperatureSensor
    ) -> None:
        """Test the reading, unit and identity."""
        entity = SmartRoomTemperatureSensor(mock_coordinator, temperature_sensor)

        assert entity.unique_id == "smartroom_temperature_4"
        assert entity.native_value == 24.5
        assert entity.device_class == SensorDeviceClass.TEMPERATURE
        assert entity.state_class == SensorStateClass.MEASUREMENT
        assert entity.native_unit_of_measurement == UnitOfTemperature.CELSIUS
        assert entity.extra_state_attributes == {"room_id": 10}

    def test_coordinator_update_refreshes_reading(
        self, mock_coordinator: Mock, temperature_sensor: TemperatureSensor
    ) -> None:
        """Test that a polled reading replaces the previous one."""
        entity = SmartRoomTemperatureSensor(mock_coordinator, replace(temperature_sensor))
        entity.async_write_ha_state = Mock()
        mock_coordinator.data.temperature_sensors[4].current_value = 26.0

        entity._handle_coordinator_update()

        assert entity.native_value == 26.0
        entity.async_write_ha_state.assert_called_once()

    def test_unavailable_when_sensor_disappears(
        self, mock_coordinator: Mock, temperature_sensor: TemperatureSensor
    ) -> None:
        """Test that a sensor no longer reported becomes unavailable."""
        entity = SmartRoomTemperatureSensor(mock_coordinator, temperature_sensor)
        entity.async_write_ha_state = Mock()
        mock_coordinator.data.temperature_sensors.clear()

        entity._handle_coordinator_update()

        assert entity.available is False


class TestSmartRoomPowerSensors:
    """Tests for the power and energy sensors of a power meter."""

    def test_power_state(self, mock_coordinator: Mock, power_sensor: PowerSensor) -> None:
        """Test the instantaneous power reading."""
        entity = SmartRoomPowerSensor(mock_coordinator, power_sensor)

        assert entity.unique_id == "smartroom_power_5"
        assert entity.native_value == 120.5
        assert entity.device_class == SensorDeviceClass.POWER
        assert entity.native_unit_of_measurement == UnitOfPower.WATT

    def test_energy_state(self, mock_coordinator: Mock, power_sensor: PowerSensor) -> None:
        """Test the energy counter reading."""
        entity = SmartRoomEnergySensor(mock_coordinator, power_sensor)

        assert entity.unique_id == "smartroom_energy_5"
        assert entity.name == "Office meter energy"
        assert entity.native_value == 3400.0
        assert entity.device_class == SensorDeviceClass.ENERGY
        assert entity.state_class == SensorStateClass.TOTAL_INCREASING
        assert entity.native_unit_of_measurement == UnitOfEnergy.WATT_HOUR
