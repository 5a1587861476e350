"""Services for editing SmartRoom automations.

These services replace the schedule editor and the equipment picker of the
SmartRoom app: schedules are entered as structured fields and encoded to
cron, and the set of lights an automation controls is reconciled against
the actions stored on the backend.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Any, NoReturn

import voluptuous as vol
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv

from . import api, schedule
from .const import (
    ACTION_TYPE_ON,
    ATTR_ACTIVE,
    ATTR_AUTOMATION_ID,
    ATTR_DAY_OF_MONTH,
    ATTR_DESCRIPTION,
    ATTR_FREQUENCY,
    ATTR_HOUR,
    ATTR_LIGHT_IDS,
    ATTR_MINUTE,
    ATTR_NAME,
    ATTR_WEEKDAY,
    DOMAIN,
    SERVICE_CREATE_AUTOMATION,
    SERVICE_DELETE_AUTOMATION,
    SERVICE_SET_AUTOMATION_LIGHTS,
    SERVICE_SET_AUTOMATION_SCHEDULE,
    TARGET_TYPE_LIGHT,
)
from .reconcile import AssociationReconciler, ReconcileResult

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant, ServiceCall

    from .coordinator import SmartRoomCoordinator

_LOGGER = logging.getLogger(__name__)

ATTR_CONFIG_ENTRY_ID = "config_entry_id"

WEEKDAY_NAMES = [weekday.name.lower() for weekday in schedule.Weekday]

SCHEDULE_FIELDS = {
    vol.Required(ATTR_FREQUENCY): vol.In([frequency.value for frequency in schedule.Frequency]),
    vol.Required(ATTR_HOUR): vol.All(vol.Coerce(int), vol.Range(min=0, max=23)),
    vol.Required(ATTR_MINUTE): vol.All(vol.Coerce(int), vol.Range(min=0, max=59)),
    vol.Optional(ATTR_WEEKDAY): vol.In(WEEKDAY_NAMES),
    vol.Optional(ATTR_DAY_OF_MONTH): vol.All(vol.Coerce(int), vol.Range(min=1, max=31)),
}

SET_SCHEDULE_SCHEMA = vol.Schema(
    {
        vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string,
        vol.Required(ATTR_AUTOMATION_ID): vol.Coerce(int),
        **SCHEDULE_FIELDS,
    }
)
SET_LIGHTS_SCHEMA = vol.Schema(
    {
        vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string,
        vol.Required(ATTR_AUTOMATION_ID): vol.Coerce(int),
        vol.Required(ATTR_LIGHT_IDS): vol.All(cv.ensure_list, [vol.Coerce(int)]),
    }
)
CREATE_AUTOMATION_SCHEMA = vol.Schema(
    {
        vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string,
        vol.Required(ATTR_NAME): cv.string,
        vol.Optional(ATTR_ACTIVE, default=True): cv.boolean,
        vol.Optional(ATTR_DESCRIPTION): cv.string,
        **SCHEDULE_FIELDS,
    }
)
DELETE_AUTOMATION_SCHEMA = vol.Schema(
    {
        vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string,
        vol.Required(ATTR_AUTOMATION_ID): vol.Coerce(int),
    }
)

SERVICES = (
    SERVICE_SET_AUTOMATION_SCHEDULE,
    SERVICE_SET_AUTOMATION_LIGHTS,
    SERVICE_CREATE_AUTOMATION,
    SERVICE_DELETE_AUTOMATION,
)


def schedule_from_service_data(data: dict[str, Any]) -> schedule.ScheduleSpec:
    """Build and validate a schedule from service call fields.

    Raises:
        ServiceValidationError: If a field required by the frequency is
            missing.

    """
    frequency = schedule.Frequency(data[ATTR_FREQUENCY])
    weekday = data.get(ATTR_WEEKDAY)
    spec = schedule.ScheduleSpec(
        frequency=frequency,
        hour=data[ATTR_HOUR],
        minute=data[ATTR_MINUTE],
        weekday=(
            schedule.Weekday[weekday.upper()]
            if frequency is schedule.Frequency.WEEKLY and weekday is not None
            else None
        ),
        day_of_month=(
            data.get(ATTR_DAY_OF_MONTH) if frequency is schedule.Frequency.MONTHLY else None
        ),
    )
    try:
        spec.validate()
    except schedule.InvalidScheduleError as err:
        raise ServiceValidationError(str(err)) from err
    return spec


def describe_failures(result: ReconcileResult) -> str:
    """Name every failed operation, e.g. "add LIGHT 5, remove LIGHT 3"."""
    return ", ".join(
        f"{failure.op} {failure.target[0]} {failure.target[1]}" for failure in result.failed
    )


def _get_coordinator(hass: HomeAssistant, call: ServiceCall) -> SmartRoomCoordinator:
    entries: dict[str, Any] = hass.data.get(DOMAIN, {})
    entry_id = call.data.get(ATTR_CONFIG_ENTRY_ID)

    if entry_id is not None:
        if entry_id not in entries:
            error_msg = f"SmartRoom config entry {entry_id} is not loaded"
            raise ServiceValidationError(error_msg)
        return entries[entry_id]["coordinator"]

    if len(entries) != 1:
        error_msg = "Specify config_entry_id when zero or several SmartRoom entries are loaded"
        raise ServiceValidationError(error_msg)
    return next(iter(entries.values()))["coordinator"]


def _raise_api_error(action: str, err: api.SmartRoomApiError) -> NoReturn:
    if isinstance(err, api.SessionExpiredError):
        error_msg = f"Session expired while trying to {action}. Please re-authenticate."
    else:
        error_msg = f"Failed to {action}: {err}"
    raise HomeAssistantError(error_msg) from err


async def async_set_automation_schedule(hass: HomeAssistant, call: ServiceCall) -> None:
    """Encode a structured schedule and store it on an automation."""
    coordinator = _get_coordinator(hass, call)
    automation_id = call.data[ATTR_AUTOMATION_ID]
    spec = schedule_from_service_data(call.data)
    cron_expression = schedule.encode(spec)

    try:
        automation = await api.async_get_automation(coordinator.pipeline, automation_id)
        _LOGGER.debug(
            "Changing schedule of automation %s from %s at %s to %s at %s (%s)",
            automation_id,
            schedule.describe(schedule.decode(automation.cron_expression)),
            automation.cron_expression,
            schedule.describe(spec),
            schedule.format_time(spec.hour, spec.minute),
            cron_expression,
        )
        await api.async_update_automation(
            coordinator.pipeline,
            automation_id,
            name=automation.name,
            cron_expression=cron_expression,
            is_active=automation.is_active,
            description=automation.description,
        )
    except api.SmartRoomApiError as err:
        _raise_api_error(f"update the schedule of automation {automation_id}", err)

    await coordinator.async_request_refresh()


async def async_set_automation_lights(hass: HomeAssistant, call: ServiceCall) -> None:
    """Make an automation control exactly the given lights.

    Only the differences with the stored actions are sent. When some
    operations fail, the ones that succeeded are kept and the error names
    the failed additions and removals.
    """
    coordinator = _get_coordinator(hass, call)
    pipeline = coordinator.pipeline
    automation_id = call.data[ATTR_AUTOMATION_ID]
    desired = {(TARGET_TYPE_LIGHT, light_id) for light_id in call.data[ATTR_LIGHT_IDS]}

    try:
        actions = await api.async_get_automation_actions(pipeline, automation_id)
    except api.SmartRoomApiError as err:
        _raise_api_error(f"load the actions of automation {automation_id}", err)

    reconciler = AssociationReconciler(
        automation_id,
        (action for action in actions if action.target_type == TARGET_TYPE_LIGHT),
    )
    plan = reconciler.plan(desired)
    if not plan.has_changes:
        _LOGGER.debug("Lights of automation %s unchanged", automation_id)
        return

    result = await reconciler.async_apply(
        plan,
        partial(api.async_create_automation_action, pipeline),
        partial(api.async_delete_automation_action, pipeline),
        meta={"actionType": ACTION_TYPE_ON, "parameterValue": None, "executionOrder": 0},
    )
    _LOGGER.info(
        "Automation %s lights: added %d, removed %d, failed %d",
        automation_id,
        len(result.added),
        len(result.removed),
        len(result.failed),
    )

    if result.session_expired:
        error_msg = (
            f"Session expired while saving the lights of automation {automation_id}; "
            f"not saved: {describe_failures(result)}"
        )
        raise HomeAssistantError(error_msg)
    if not result.ok:
        error_msg = (
            f"Some lights of automation {automation_id} were not saved: "
            f"{describe_failures(result)}"
        )
        raise HomeAssistantError(error_msg)


async def async_create_automation(hass: HomeAssistant, call: ServiceCall) -> None:
    """Create an automation from a structured schedule."""
    coordinator = _get_coordinator(hass, call)
    spec = schedule_from_service_data(call.data)

    try:
        automation = await api.async_create_automation(
            coordinator.pipeline,
            name=call.data[ATTR_NAME],
            cron_expression=schedule.encode(spec),
            is_active=call.data[ATTR_ACTIVE],
            description=call.data.get(ATTR_DESCRIPTION),
        )
    except api.SmartRoomApiError as err:
        _raise_api_error(f"create automation {call.data[ATTR_NAME]}", err)

    _LOGGER.info("Created automation %s (%s)", automation.name, automation.id)
    await coordinator.async_request_refresh()


async def async_delete_automation(hass: HomeAssistant, call: ServiceCall) -> None:
    coordinator = _get_coordinator(hass, call)
    automation_id = call.data[ATTR_AUTOMATION_ID]

    try:
        await api.async_delete_automation(coordinator.pipeline, automation_id)
    except api.SmartRoomApiError as err:
        _raise_api_error(f"delete automation {automation_id}", err)

    _LOGGER.info("Deleted automation %s", automation_id)
    await coordinator.async_request_refresh()


def async_setup_services(hass: HomeAssistant) -> None:
    """Register the integration services once."""
    if hass.services.has_service(DOMAIN, SERVICE_SET_AUTOMATION_SCHEDULE):
        return

    for service, handler, schema in (
        (SERVICE_SET_AUTOMATION_SCHEDULE, async_set_automation_schedule, SET_SCHEDULE_SCHEMA),
        (SERVICE_SET_AUTOMATION_LIGHTS, async_set_automation_lights, SET_LIGHTS_SCHEMA),
        (SERVICE_CREATE_AUTOMATION, async_create_automation, CREATE_AUTOMATION_SCHEMA),
        (SERVICE_DELETE_AUTOMATION, async_delete_automation, DELETE_AUTOMATION_SCHEMA),
    ):
        hass.services.async_register(DOMAIN, service, partial(handler, hass), schema=schema)


def async_unload_services(hass: HomeAssistant) -> None:
    for service in SERVICES:
        hass.services.async_remove(DOMAIN, service)
