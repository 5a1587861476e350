"""Pytest configuration and fixtures for SmartRoom tests."""

import pytest

from .common import TEST_TOKEN, envelope


@pytest.fixture
def sample_login_response() -> dict:
    """Fixture providing a sample sign-in API response."""
    return envelope(
        {
            "token": TEST_TOKEN,
            "type": "Bearer",
            "username": "admin",
            "groups": ["ADMIN"],
        }
    )


@pytest.fixture
def sample_light_data() -> dict:
    """Fixture providing a light as returned by the API."""
    return {
        "id": 1,
        "name": "Desk Lamp",
        "roomId": 10,
        "isActive": False,
        "level": 40,
        "description": "Lamp near the window",
    }


@pytest.fixture
def sample_ac_data() -> dict:
    """Fixture providing an air-conditioner as returned by the API."""
    return {
        "id": 7,
        "name": "Office AC",
        "roomId": 10,
        "naturalId": "AC-001",
        "power": "OFF",
        "temperature": 24,
        "mode": "COOL",
        "fanSpeed": 0,
        "swing": "OFF",
        "isActive": True,
    }


@pytest.fixture
def sample_automation_data() -> dict:
    """Fixture providing an automation as returned by the API."""
    return {
        "id": 3,
        "name": "Evening lights",
        "cronExpression": "0 0 18 * * ?",
        "isActive": True,
        "description": "Turn lights on at 6 PM",
    }


@pytest.fixture
def sample_action_data() -> list[dict]:
    """Fixture providing the actions of automation 3."""
    return [
        {
            "id": 100,
            "automationId": 3,
            "targetType": "LIGHT",
            "targetId": 1,
            "actionType": "ON",
            "parameterValue": None,
            "executionOrder": 0,
            "targetName": "Desk Lamp",
        },
        {
            "id": 101,
            "automationId": 3,
            "targetType": "LIGHT",
            "targetId": 3,
            "actionType": "ON",
            "parameterValue": None,
            "executionOrder": 0,
            "targetName": "Ceiling",
        },
    ]


@pytest.fixture
def sample_temperature_sensor_data() -> dict:
    """Fixture providing a temperature sensor as returned by the API."""
    return {
        "id": 4,
        "name": "Office temperature",
        "roomId": 10,
        "naturalId": "TS-004",
        "currentValue": 24.5,
        "isActive": True,
    }


@pytest.fixture
def sample_power_sensor_data() -> dict:
    """Fixture providing a power meter as returned by the API."""
    return {
        "id": 5,
        "name": "Office meter",
        "description": "Main circuit",
        "isActive": True,
        "currentWatt": 120.5,
        "currentWattHour": 3400.0,
        "naturalId": "PM-005",
        "roomId": 10,
    }
