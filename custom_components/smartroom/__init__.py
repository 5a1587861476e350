"""The SmartRoom integration."""

from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_PASSWORD, CONF_SCAN_INTERVAL, CONF_USERNAME, Platform
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady

from . import api
from .api import RequestPipeline, create_session_client
from .const import (
    CONF_BASE_URL,
    CONF_RESTORE_SESSION,
    CONF_TOKEN,
    DEFAULT_SCAN_INTERVAL,
    DOMAIN,
)
from .coordinator import SmartRoomCoordinator
from .services import async_setup_services, async_unload_services
from .session import SessionStore

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.CLIMATE, Platform.LIGHT, Platform.SENSOR, Platform.SWITCH]


async def async_get_startup_token(hass: HomeAssistant, entry: ConfigEntry) -> str:
    """Return the token to start the session with.

    Unless the entry opts into restoring the stored session, a fresh sign-in
    is performed with the stored credentials and the new token is saved.

    Raises:
        ConfigEntryAuthFailed: If the stored credentials are refused or no
            token can be restored.
        ConfigEntryNotReady: If the backend cannot be reached.

    """
    if entry.options.get(CONF_RESTORE_SESSION, False):
        token = entry.data.get(CONF_TOKEN)
        if not token:
            error_msg = "No stored session to restore"
            raise ConfigEntryAuthFailed(error_msg)
        _LOGGER.debug("Restoring stored session for entry %s", entry.entry_id)
        return token

    session = create_session_client(hass)
    try:
        login = await api.async_login(
            session,
            entry.data[CONF_BASE_URL],
            entry.data[CONF_USERNAME],
            entry.data[CONF_PASSWORD],
        )
    except api.InvalidCredentialsError as err:
        _LOGGER.warning("Sign-in refused for entry %s: %s", entry.entry_id, err)
        raise ConfigEntryAuthFailed(str(err)) from err
    except api.SmartRoomApiError as err:
        _LOGGER.error("Sign-in failed for entry %s: %s", entry.entry_id, err)
        raise ConfigEntryNotReady(str(err)) from err

    hass.config_entries.async_update_entry(
        entry, data={**entry.data, CONF_TOKEN: login.token}
    )
    return login.token


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up SmartRoom integration for entry %s", entry.entry_id)

    token = await async_get_startup_token(hass, entry)
    session_store = SessionStore(token)
    pipeline = RequestPipeline(
        create_session_client(hass), session_store, entry.data[CONF_BASE_URL]
    )

    @callback
    def _async_handle_session_expired() -> None:
        _LOGGER.warning(
            "Session for entry %s expired, starting re-authentication", entry.entry_id
        )
        session_store.clear()
        entry.async_start_reauth(hass)

    entry.async_on_unload(session_store.on_expired(_async_handle_session_expired))

    coordinator = SmartRoomCoordinator(
        hass,
        pipeline,
        scan_interval=entry.options.get(CONF_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL),
    )
    await coordinator.async_config_entry_first_refresh()

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "session_store": session_store,
        "pipeline": pipeline,
        "coordinator": coordinator,
    }
    _LOGGER.debug(
        "Stored data for entry %s: %d lights, %d air-conditioners, %d automations",
        entry.entry_id,
        len(coordinator.data.lights),
        len(coordinator.data.air_conditioners),
        len(coordinator.data.automations),
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    async_setup_services(hass)
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    _LOGGER.info("Successfully set up SmartRoom integration for entry %s", entry.entry_id)
    return True


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options changed."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading SmartRoom integration for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)
        return False

    entries = hass.data.get(DOMAIN, {})
    entries.pop(entry.entry_id, None)
    _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)

    if not entries:
        async_unload_services(hass)

    _LOGGER.info("Successfully unloaded SmartRoom integration for entry %s", entry.entry_id)
    return True
