"""Tests for the SmartRoom light entity."""

from dataclasses import replace
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest
from homeassistant.components.light import ATTR_BRIGHTNESS, ColorMode
from pytest_httpx import HTTPXMock

from custom_components.smartroom import api
from custom_components.smartroom.api import RemoteError, SessionExpiredError
from custom_components.smartroom.coordinator import SmartRoomData
from custom_components.smartroom.light import (
    SmartRoomLight,
    async_setup_entry,
    brightness_to_level,
)
from custom_components.smartroom.models import Light
from custom_components.smartroom.session import SessionStore

from .common import BASE_URL, TEST_TOKEN, envelope

API = "custom_components.smartroom.light.api"


@pytest.fixture
def light() -> Light:
    """Create a light that is off at level 40."""
    return Light(id=1, name="Desk Lamp", room_id=10, is_active=False, level=40)


@pytest.fixture
def mock_coordinator(light: Light) -> Mock:
    """Create a mock coordinator holding the light."""
    coordinator = Mock()
    coordinator.data = SmartRoomData(lights={light.id: replace(light)})
    coordinator.pipeline = Mock(spec=api.RequestPipeline)
    coordinator.last_update_success = True
    coordinator.async_add_listener = Mock(return_value=Mock())
    return coordinator


@pytest.fixture
def entity(mock_coordinator: Mock, light: Light) -> SmartRoomLight:
    """Create a light entity with state writes mocked."""
    light_entity = SmartRoomLight(mock_coordinator, light)
    light_entity.async_write_ha_state = Mock()
    return light_entity


class TestAsyncSetupEntry:
    """Tests for async_setup_entry function."""

    @pytest.mark.asyncio
    async def test_creates_entity_per_light(self, mock_coordinator: Mock) -> None:
        """Test that a light entity is created for each light."""
        hass = Mock()
        hass.data = {"smartroom": {"test_entry": {"coordinator": mock_coordinator}}}
        entry = Mock()
        entry.entry_id = "test_entry"
        async_add_entities = Mock()

        await async_setup_entry(hass, entry, async_add_entities)

        entities = async_add_entities.call_args[0][0]
        assert len(entities) == 1
        assert isinstance(entities[0], SmartRoomLight)


class TestBrightnessToLevel:
    """Tests for brightness_to_level."""

    @pytest.mark.parametrize(("brightness", "expected"), [(255, 100), (128, 51), (1, 1)])
    def test_brightness_to_level(self, brightness: int, expected: int) -> None:
        """Test conversion from 0-255 brightness to a 1-100 level."""
        assert brightness_to_level(brightness) == expected


class TestSmartRoomLightProperties:
    """Tests for light state properties."""

    def test_init_sets_attributes(self, entity: SmartRoomLight) -> None:
        """Test identity and color mode."""
        assert entity.unique_id == "smartroom_light_1"
        assert entity.color_mode == ColorMode.BRIGHTNESS
        assert entity.supported_color_modes == {ColorMode.BRIGHTNESS}

    def test_state(self, entity: SmartRoomLight) -> None:
        """Test on/off state and brightness."""
        assert entity.is_on is False
        assert entity.brightness == 102
        assert entity.extra_state_attributes == {"room_id": 10}

    def test_brightness_without_level(self, entity: SmartRoomLight) -> None:
        """Test that a zero level has no brightness."""
        entity.model.level = 0
        assert entity.brightness is None


class TestSmartRoomLightTurnOn:
    """Tests for turning the light on and off."""

    @pytest.mark.asyncio
    async def test_turn_on(self, entity: SmartRoomLight, light: Light) -> None:
        """Test that turning on drives the light to active."""
        echo = replace(light, is_active=True)
        with patch(f"{API}.async_set_light_active", AsyncMock(return_value=echo)) as mock_set:
            await entity.async_turn_on()

        mock_set.assert_awaited_once_with(entity._coordinator.pipeline, 1, True)
        assert entity.is_on is True

    @pytest.mark.asyncio
    async def test_turn_on_keeps_state_when_read_back_fails(
        self,
        entity: SmartRoomLight,
        httpx_mock: HTTPXMock,
        sample_light_data: dict,
    ) -> None:
        """Test that a toggled light stays on when the final read fails."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/lights/1", method="GET", json=envelope(sample_light_data)
        )
        httpx_mock.add_response(
            url=f"{BASE_URL}/lights/1/toggle-state", method="PUT", json=envelope(None)
        )
        httpx_mock.add_exception(
            httpx.ConnectError("Connection refused"),
            url=f"{BASE_URL}/lights/1",
            method="GET",
        )

        async with httpx.AsyncClient() as session:
            entity._coordinator.pipeline = api.RequestPipeline(
                session, SessionStore(TEST_TOKEN), BASE_URL
            )
            await entity.async_turn_on()

        assert entity.is_on is True
        assert not entity.controller.is_in_flight(1, "is_active")

    @pytest.mark.asyncio
    async def test_turn_off_rolls_back_on_failure(self, entity: SmartRoomLight) -> None:
        """Test that a failed turn off restores the previous state."""
        entity.model.is_active = True
        with patch(
            f"{API}.async_set_light_active",
            AsyncMock(side_effect=RemoteError(500, b"")),
        ):
            await entity.async_turn_off()

        assert entity.is_on is True

    @pytest.mark.asyncio
    async def test_turn_on_with_brightness_activates(self, entity: SmartRoomLight) -> None:
        """Test that a brightness on an inactive light sets level then activates."""
        with (
            patch(f"{API}.async_set_light_level", AsyncMock(return_value=None)) as mock_level,
            patch(
                f"{API}.async_set_light_active",
                AsyncMock(return_value=None),
            ) as mock_active,
        ):
            await entity.async_turn_on(**{ATTR_BRIGHTNESS: 255})

        mock_level.assert_awaited_once_with(entity._coordinator.pipeline, 1, 100)
        mock_active.assert_awaited_once_with(entity._coordinator.pipeline, 1, True)
        assert entity.model.level == 100
        assert entity.is_on is True

    @pytest.mark.asyncio
    async def test_turn_on_with_brightness_when_on(self, entity: SmartRoomLight) -> None:
        """Test that an active light only gets the level update."""
        entity.model.is_active = True
        with (
            patch(f"{API}.async_set_light_level", AsyncMock(return_value=None)),
            patch(f"{API}.async_set_light_active", AsyncMock()) as mock_active,
        ):
            await entity.async_turn_on(**{ATTR_BRIGHTNESS: 128})

        mock_active.assert_not_awaited()
        assert entity.model.level == 51

    @pytest.mark.asyncio
    async def test_turn_on_with_brightness_session_expired(
        self, entity: SmartRoomLight
    ) -> None:
        """Test that session expiry during a level change does not raise."""
        with (
            patch(
                f"{API}.async_set_light_level",
                AsyncMock(side_effect=SessionExpiredError("Session expired")),
            ),
            patch(f"{API}.async_set_light_active", AsyncMock()) as mock_active,
        ):
            await entity.async_turn_on(**{ATTR_BRIGHTNESS: 128})

        mock_active.assert_not_awaited()
        assert entity.model.level == 40
