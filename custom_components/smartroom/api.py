"""API client for the SmartRoom backend.

This module provides the authenticated request pipeline and the functions
that map SmartRoom REST resources (floors, rooms, lights, air-conditioners,
automations and their actions, room sensors) onto the data models.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx
from homeassistant.helpers.httpx_client import create_async_httpx_client

from .const import (
    ACTION_TYPE_ON,
    ALL_ITEMS_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    POWER_OFF,
    POWER_ON,
    REQUEST_TIMEOUT,
)
from .models import (
    AirConditioner,
    Automation,
    AutomationAction,
    Floor,
    Light,
    LoginResult,
    PowerSensor,
    Room,
    TemperatureSensor,
)

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .session import SessionStore

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_MULTIPLE_CHOICES = 300
HTTP_UNAUTHORIZED = 401


class SmartRoomApiError(Exception):
    """Base exception for SmartRoom API errors."""


class SessionExpiredError(SmartRoomApiError):
    """Exception raised when the backend rejects the session credential."""


class InvalidCredentialsError(SmartRoomApiError):
    """Exception raised when sign-in is refused."""


class InvalidResponseError(SmartRoomApiError):
    """Exception raised when a response body cannot be decoded."""


class RemoteError(SmartRoomApiError):
    """Exception raised when the backend answers with a non-2xx status."""

    def __init__(self, status: int, body: bytes) -> None:
        """Initialize the error.

        Args:
            status: HTTP status code returned by the backend.
            body: Raw response body.

        """
        super().__init__(f"Request failed: {status}")
        self.status = status
        self.body = body


class NetworkError(SmartRoomApiError):
    """Exception raised when no response was received."""

    def __init__(self, cause: Exception) -> None:
        """Initialize the error with the transport exception as cause."""
        super().__init__(f"Connection error: {cause}")
        self.cause = cause


def create_headers(token: str | None = None) -> dict[str, str]:
    """Create HTTP headers for SmartRoom API requests.

    Args:
        token: Optional bearer token to include in headers.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {
        "content-type": "application/json",
        "accept": "application/json",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def is_success(status: int) -> bool:
    """Check if HTTP status code is in the 2xx range."""
    return HTTP_OK <= status < HTTP_MULTIPLE_CHOICES


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates an authorization failure."""
    return status == HTTP_UNAUTHORIZED


def decode_envelope(payload: bytes) -> Any:
    """Decode a SmartRoom response envelope and return its data field.

    Args:
        payload: Raw response body.

    Returns:
        The value of the envelope's "data" field (None when absent).

    Raises:
        InvalidResponseError: If the body is not a JSON object.

    """
    if not payload:
        return None

    try:
        data = json.loads(payload)
    except (ValueError, UnicodeDecodeError) as err:
        error_msg = f"Invalid JSON in response: {err}"
        raise InvalidResponseError(error_msg) from err

    if not isinstance(data, dict):
        error_msg = "Unexpected response envelope"
        raise InvalidResponseError(error_msg)

    return data.get("data")


def extract_page_content(data: Any) -> list[dict[str, Any]]:
    """Extract the item list from a paginated or plain list payload."""
    if isinstance(data, dict):
        return data.get("content", [])
    if isinstance(data, list):
        return data
    return []


class RequestPipeline:
    """Send authenticated requests and centralize session expiry handling.

    Every request is sent with the credential currently held by the session
    store. A 401 answer expires the session (the store notifies its listeners
    at most once per episode) and fails the call with SessionExpiredError.
    The pipeline never retries and never clears the credential itself.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        session_store: SessionStore,
        base_url: str,
    ) -> None:
        """Initialize the pipeline.

        Args:
            session: HTTP client used as transport.
            session_store: Store providing the bearer token.
            base_url: API root, e.g. "http://host:8080/api/v1".

        """
        self._session = session
        self._session_store = session_store
        self._base_url = base_url.rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def session_store(self) -> SessionStore:
        return self._session_store

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> bytes:
        """Send a request and return the raw response body.

        Args:
            method: HTTP method.
            path: Path relative to the API root.
            params: Optional query parameters.
            json: Optional JSON body.

        Returns:
            Raw response body of a 2xx answer.

        Raises:
            SessionExpiredError: On HTTP 401.
            RemoteError: On any other non-2xx status.
            NetworkError: If no response was received.

        """
        credential = self._session_store.get_credential()
        url = f"{self._base_url}{path}"

        _LOGGER.debug("%s %s", method, path)
        try:
            response = await self._session.request(
                method,
                url,
                headers=create_headers(credential),
                params=params,
                json=json,
            )
        except httpx.RequestError as err:
            _LOGGER.debug("Transport failure for %s %s: %s", method, path, err)
            raise NetworkError(err) from err

        if is_success(response.status_code):
            return response.content

        if is_auth_error(response.status_code):
            self._session_store.expire(credential)
            auth_error = "Session expired"
            raise SessionExpiredError(auth_error)

        _LOGGER.debug("%s %s failed with status %d", method, path, response.status_code)
        raise RemoteError(response.status_code, response.content)

    async def send_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded envelope data."""
        payload = await self.send(method, path, params=params, json=json)
        return decode_envelope(payload)


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client for the SmartRoom API.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient. Requests are never retried.

    """
    return create_async_httpx_client(hass, timeout=REQUEST_TIMEOUT)


def _power_from_api(value: Any) -> bool:
    return str(value).upper() == POWER_ON


def _power_to_api(value: bool) -> str:
    return POWER_ON if value else POWER_OFF


def parse_floor(data: dict[str, Any]) -> Floor:
    return Floor(id=data["id"], name=data["name"], description=data.get("description"))


def parse_room(data: dict[str, Any]) -> Room:
    return Room(
        id=data["id"],
        name=data["name"],
        floor_id=data["floorId"],
        description=data.get("description"),
    )


def parse_light(data: dict[str, Any]) -> Light:
    """Build a Light from its API representation."""
    return Light(
        id=data["id"],
        name=data["name"],
        room_id=data["roomId"],
        is_active=bool(data.get("isActive", False)),
        level=int(data.get("level", 0)),
        description=data.get("description"),
    )


def parse_air_conditioner(data: dict[str, Any]) -> AirConditioner:
    """Build an AirConditioner from its API representation.

    Power and swing are reported as "ON"/"OFF" strings.
    """
    return AirConditioner(
        id=data["id"],
        name=data["name"],
        room_id=data["roomId"],
        power=_power_from_api(data.get("power")),
        temperature=int(data["temperature"]),
        mode=data["mode"],
        fan_speed=int(data.get("fanSpeed", 0)),
        swing=_power_from_api(data.get("swing")),
        is_active=bool(data.get("isActive", True)),
        natural_id=data.get("naturalId"),
        description=data.get("description"),
    )


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def parse_temperature_sensor(data: dict[str, Any], room_id: int) -> TemperatureSensor:
    """Build a TemperatureSensor from its API representation.

    Sensors listed under a room may omit roomId, so the room being listed is
    used as the fallback.
    """
    return TemperatureSensor(
        id=data["id"],
        name=data["name"],
        room_id=data.get("roomId", room_id),
        current_value=_optional_float(data.get("currentValue")),
        is_active=bool(data.get("isActive", True)),
        natural_id=data.get("naturalId"),
        description=data.get("description"),
    )


def parse_power_sensor(data: dict[str, Any], room_id: int) -> PowerSensor:
    return PowerSensor(
        id=data["id"],
        name=data["name"],
        room_id=data.get("roomId", room_id),
        current_watt=_optional_float(data.get("currentWatt")),
        current_watt_hour=_optional_float(data.get("currentWattHour")),
        is_active=bool(data.get("isActive", True)),
        natural_id=data.get("naturalId"),
        description=data.get("description"),
    )


def parse_automation(data: dict[str, Any]) -> Automation:
    return Automation(
        id=data["id"],
        name=data["name"],
        cron_expression=data["cronExpression"],
        is_active=bool(data.get("isActive", False)),
        description=data.get("description"),
    )


def parse_automation_action(data: dict[str, Any]) -> AutomationAction:
    return AutomationAction(
        id=data["id"],
        automation_id=data["automationId"],
        target_type=data["targetType"],
        target_id=data["targetId"],
        action_type=data.get("actionType", ""),
        parameter_value=data.get("parameterValue"),
        execution_order=data.get("executionOrder", 0),
        target_name=data.get("targetName"),
    )


async def async_login(
    session: httpx.AsyncClient,
    base_url: str,
    username: str,
    password: str,
) -> LoginResult:
    """Sign in with username and password.

    Sign-in does not go through the request pipeline: a 401 here means the
    credentials are wrong, not that a session expired.

    Args:
        session: HTTP client session.
        base_url: API root.
        username: Account name.
        password: Account password.

    Returns:
        LoginResult carrying the bearer token.

    Raises:
        InvalidCredentialsError: If sign-in is refused.
        RemoteError: If the backend answers with another error status.
        NetworkError: If no response was received.

    """
    url = f"{base_url.rstrip('/')}/auth/signin"
    payload = {"username": username, "password": password}

    _LOGGER.debug("Signing in to SmartRoom API as %s", username)
    try:
        response = await session.post(url, headers=create_headers(), json=payload)
    except httpx.RequestError as err:
        raise NetworkError(err) from err

    if is_auth_error(response.status_code):
        auth_error = "Invalid username or password"
        raise InvalidCredentialsError(auth_error)
    if not is_success(response.status_code):
        raise RemoteError(response.status_code, response.content)

    data = decode_envelope(response.content)
    if not isinstance(data, dict) or "token" not in data:
        error_msg = "Sign-in response without token"
        raise InvalidResponseError(error_msg)

    _LOGGER.debug("Successfully signed in to SmartRoom API")
    return LoginResult(
        token=data["token"],
        token_type=data.get("type", "Bearer"),
        username=data.get("username", username),
        groups=list(data.get("groups", [])),
    )


async def async_get_floors(
    pipeline: RequestPipeline, page: int = 0, size: int = DEFAULT_PAGE_SIZE
) -> list[Floor]:
    data = await pipeline.send_json("GET", "/floors", params={"page": page, "size": size})
    return [parse_floor(item) for item in extract_page_content(data)]


async def async_get_rooms_by_floor(
    pipeline: RequestPipeline,
    floor_id: int,
    page: int = 0,
    size: int = DEFAULT_PAGE_SIZE,
) -> list[Room]:
    data = await pipeline.send_json(
        "GET", f"/floors/{floor_id}/rooms", params={"page": page, "size": size}
    )
    return [parse_room(item) for item in extract_page_content(data)]


async def async_get_lights(
    pipeline: RequestPipeline, page: int = 0, size: int = ALL_ITEMS_PAGE_SIZE
) -> list[Light]:
    data = await pipeline.send_json("GET", "/lights", params={"page": page, "size": size})
    return [parse_light(item) for item in extract_page_content(data)]


async def async_get_lights_by_room(pipeline: RequestPipeline, room_id: int) -> list[Light]:
    data = await pipeline.send_json("GET", f"/lights/room/{room_id}")
    return [parse_light(item) for item in extract_page_content(data)]


async def async_get_light(pipeline: RequestPipeline, light_id: int) -> Light:
    data = await pipeline.send_json("GET", f"/lights/{light_id}")
    return parse_light(data)


async def async_toggle_light(pipeline: RequestPipeline, light_id: int) -> None:
    """Flip the active state of a light.

    Raises:
        RemoteError: If the backend reports an error for the toggle.

    """
    data = await pipeline.send_json("PUT", f"/lights/{light_id}/toggle-state", json={})
    if isinstance(data, dict) and data.get("error"):
        raise RemoteError(HTTP_OK, str(data["error"]).encode())


async def async_set_light_active(
    pipeline: RequestPipeline, light_id: int, is_active: bool
) -> Light | None:
    """Drive a light to the requested active state.

    The backend only offers a stateless toggle, so the current state is read
    first and the toggle is issued only when it differs. The light is read
    again afterwards and returned as the authoritative snapshot.

    Returns:
        The light as read after the toggle, or None when that read failed.
        The toggle has been applied at that point, so the caller keeps the
        requested state.

    """
    current = await async_get_light(pipeline, light_id)
    if current.is_active == is_active:
        _LOGGER.debug("Light %s already %s", light_id, "on" if is_active else "off")
        return current

    await async_toggle_light(pipeline, light_id)
    try:
        return await async_get_light(pipeline, light_id)
    except SmartRoomApiError as err:
        _LOGGER.warning("Light %s toggled but could not be read back: %s", light_id, err)
        return None


async def async_set_light_level(
    pipeline: RequestPipeline, light_id: int, level: int
) -> Light | None:
    """Set the brightness level of a light.

    Returns:
        The updated light when the backend echoes it, otherwise None.

    """
    data = await pipeline.send_json("PUT", f"/lights/{light_id}/level", json={"level": level})
    if isinstance(data, dict) and "id" in data:
        return parse_light(data)
    return None


async def async_get_air_conditioners(
    pipeline: RequestPipeline, page: int = 0, size: int = ALL_ITEMS_PAGE_SIZE
) -> list[AirConditioner]:
    data = await pipeline.send_json(
        "GET", "/air-conditions", params={"page": page, "size": size}
    )
    return [parse_air_conditioner(item) for item in extract_page_content(data)]


async def async_get_air_conditioners_by_room(
    pipeline: RequestPipeline, room_id: int
) -> list[AirConditioner]:
    data = await pipeline.send_json("GET", f"/rooms/{room_id}/air-conditions")
    return [parse_air_conditioner(item) for item in extract_page_content(data)]


async def async_get_temperature_sensors_by_room(
    pipeline: RequestPipeline,
    room_id: int,
    page: int = 0,
    size: int = DEFAULT_PAGE_SIZE,
) -> list[TemperatureSensor]:
    data = await pipeline.send_json(
        "GET", f"/rooms/{room_id}/temperatures", params={"page": page, "size": size}
    )
    return [parse_temperature_sensor(item, room_id) for item in extract_page_content(data)]


async def async_get_power_sensors_by_room(
    pipeline: RequestPipeline,
    room_id: int,
    page: int = 0,
    size: int = DEFAULT_PAGE_SIZE,
) -> list[PowerSensor]:
    data = await pipeline.send_json(
        "GET",
        f"/rooms/{room_id}/power-consumptions",
        params={"page": page, "size": size},
    )
    return [parse_power_sensor(item, room_id) for item in extract_page_content(data)]


async def async_get_air_conditioner(
    pipeline: RequestPipeline, ac_id: int
) -> AirConditioner:
    data = await pipeline.send_json("GET", f"/air-conditions/{ac_id}")
    return parse_air_conditioner(data)


async def _async_update_air_conditioner(
    pipeline: RequestPipeline, ac_id: int, attribute: str, payload: dict[str, Any]
) -> AirConditioner:
    _LOGGER.debug("Updating %s of air-conditioner %s: %s", attribute, ac_id, payload)
    data = await pipeline.send_json("PUT", f"/air-conditions/{ac_id}/{attribute}", json=payload)
    return parse_air_conditioner(data)


async def async_set_ac_power(
    pipeline: RequestPipeline, ac_id: int, power: bool
) -> AirConditioner:
    return await _async_update_air_conditioner(
        pipeline, ac_id, "power", {"power": _power_to_api(power)}
    )


async def async_set_ac_temperature(
    pipeline: RequestPipeline, ac_id: int, temperature: int
) -> AirConditioner:
    return await _async_update_air_conditioner(
        pipeline, ac_id, "temperature", {"temperature": temperature}
    )


async def async_set_ac_mode(
    pipeline: RequestPipeline, ac_id: int, mode: str
) -> AirConditioner:
    return await _async_update_air_conditioner(pipeline, ac_id, "mode", {"mode": mode})


async def async_set_ac_fan_speed(
    pipeline: RequestPipeline, ac_id: int, fan_speed: int
) -> AirConditioner:
    return await _async_update_air_conditioner(
        pipeline, ac_id, "fan-speed", {"fanSpeed": fan_speed}
    )


async def async_set_ac_swing(
    pipeline: RequestPipeline, ac_id: int, swing: bool
) -> AirConditioner:
    return await _async_update_air_conditioner(
        pipeline, ac_id, "swing", {"swing": _power_to_api(swing)}
    )


async def async_get_automations(
    pipeline: RequestPipeline, page: int = 0, size: int = 100
) -> list[Automation]:
    data = await pipeline.send_json(
        "GET", "/automations", params={"page": page, "size": size}
    )
    return [parse_automation(item) for item in extract_page_content(data)]


async def async_get_automation(pipeline: RequestPipeline, automation_id: int) -> Automation:
    data = await pipeline.send_json("GET", f"/automations/{automation_id}")
    return parse_automation(data)


def _automation_payload(
    name: str, cron_expression: str, is_active: bool, description: str | None
) -> dict[str, Any]:
    return {
        "name": name,
        "cronExpression": cron_expression,
        "isActive": is_active,
        "description": description,
    }


async def async_create_automation(
    pipeline: RequestPipeline,
    name: str,
    cron_expression: str,
    is_active: bool = True,
    description: str | None = None,
) -> Automation:
    data = await pipeline.send_json(
        "POST",
        "/automations",
        json=_automation_payload(name, cron_expression, is_active, description),
    )
    return parse_automation(data)


async def async_update_automation(
    pipeline: RequestPipeline,
    automation_id: int,
    name: str,
    cron_expression: str,
    is_active: bool,
    description: str | None = None,
) -> Automation:
    """Replace an automation's name, schedule, state and description."""
    data = await pipeline.send_json(
        "PUT",
        f"/automations/{automation_id}",
        json=_automation_payload(name, cron_expression, is_active, description),
    )
    return parse_automation(data)


async def async_delete_automation(pipeline: RequestPipeline, automation_id: int) -> None:
    await pipeline.send("DELETE", f"/automations/{automation_id}")


async def async_get_automation_actions(
    pipeline: RequestPipeline, automation_id: int
) -> list[AutomationAction]:
    data = await pipeline.send_json("GET", f"/automations/{automation_id}/actions")
    return [parse_automation_action(item) for item in extract_page_content(data)]


async def async_create_automation_action(
    pipeline: RequestPipeline,
    automation_id: int,
    target_type: str,
    target_id: int,
    meta: dict[str, Any] | None = None,
) -> int:
    """Attach a target to an automation.

    Args:
        pipeline: Request pipeline.
        automation_id: Owning automation.
        target_type: Target kind, e.g. "LIGHT".
        target_id: Target identifier.
        meta: Optional action fields (actionType, parameterValue,
            executionOrder).

    Returns:
        Identifier of the created action.

    """
    payload = {
        "targetType": target_type,
        "targetId": target_id,
        "actionType": ACTION_TYPE_ON,
        "parameterValue": None,
        "executionOrder": 0,
        **(meta or {}),
    }
    data = await pipeline.send_json(
        "POST", f"/automations/{automation_id}/actions", json=payload
    )
    if not isinstance(data, dict) or "id" not in data:
        error_msg = "Create action response without id"
        raise InvalidResponseError(error_msg)
    return data["id"]


async def async_delete_automation_action(pipeline: RequestPipeline, action_id: int) -> None:
    await pipeline.send("DELETE", f"/automation-actions/{action_id}")
