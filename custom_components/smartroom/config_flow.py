"""
Configuration flow for SmartRoom integration.

This module handles sign-in, re-authentication after the session expires,
and the integration options through Home Assistant's config flow system.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_PASSWORD, CONF_SCAN_INTERVAL, CONF_USERNAME
from homeassistant.core import callback
from homeassistant.helpers.httpx_client import get_async_client

from . import api
from .const import (
    CONF_BASE_URL,
    CONF_RESTORE_SESSION,
    CONF_TOKEN,
    DEFAULT_BASE_URL,
    DEFAULT_SCAN_INTERVAL,
    DOMAIN,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_UNKNOWN,
)
from .models import LoginResult

_LOGGER = logging.getLogger(__name__)

MIN_SCAN_INTERVAL = 10


def build_unique_id(username: str, base_url: str) -> str:
    """Return the unique id of an account on a given backend."""
    return f"{username.lower()}@{base_url.rstrip('/')}"


class SmartRoomConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for SmartRoom integration."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        super().__init__()
        self._reauth_entry: ConfigEntry | None = None

    async def _async_login(
        self, base_url: str, username: str, password: str, errors: dict[str, str]
    ) -> LoginResult | None:
        """
        Sign in and map failures to form errors.

        Args:
            base_url: API root.
            username: Account name.
            password: Account password.
            errors: Form errors, updated in place on failure.

        Returns:
            The sign-in result, or None if sign-in failed.

        """
        try:
            session = get_async_client(self.hass)
            login = await api.async_login(session, base_url, username, password)
            _LOGGER.info("Successfully signed in to SmartRoom API")
        except api.InvalidCredentialsError as err:
            _LOGGER.warning("Authentication failed (%s): %s", ERROR_INVALID_AUTH, err)
            errors["base"] = ERROR_INVALID_AUTH
        except api.NetworkError:
            _LOGGER.exception("Connection error (%s)", ERROR_CANNOT_CONNECT)
            errors["base"] = ERROR_CANNOT_CONNECT
        except api.SmartRoomApiError:
            _LOGGER.exception("API error (%s)", ERROR_API_ERROR)
            errors["base"] = ERROR_API_ERROR
        except Exception:
            _LOGGER.exception(
                "Unexpected error during authentication (%s)",
                ERROR_UNKNOWN,
            )
            errors["base"] = ERROR_UNKNOWN
        else:
            return login
        return None

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing base URL, username and
                password.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            base_url = user_input[CONF_BASE_URL].rstrip("/")
            username = user_input[CONF_USERNAME]
            password = user_input[CONF_PASSWORD]

            login = await self._async_login(base_url, username, password, errors)
            if login is not None:
                await self.async_set_unique_id(build_unique_id(username, base_url))
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title=f"SmartRoom ({username})",
                    data={
                        CONF_BASE_URL: base_url,
                        CONF_USERNAME: username,
                        CONF_PASSWORD: password,
                        CONF_TOKEN: login.token,
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_BASE_URL, default=DEFAULT_BASE_URL): str,
                    vol.Required(CONF_USERNAME): str,
                    vol.Required(CONF_PASSWORD): str,
                }
            ),
            errors=errors,
        )

    async def async_step_reauth(
        self, entry_data: Mapping[str, Any]
    ) -> ConfigFlowResult:
        """Start re-authentication after the session expired."""
        self._reauth_entry = self.hass.config_entries.async_get_entry(
            self.context["entry_id"]
        )
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Ask for the password again and sign in.

        Args:
            user_input: User input data containing the password.

        Returns:
            ConfigFlowResult aborting with reauth_successful, or the form.

        """
        errors: dict[str, str] = {}
        entry = self._reauth_entry
        if entry is None:
            return self.async_abort(reason="reauth_failed")

        if user_input is not None:
            password = user_input[CONF_PASSWORD]
            login = await self._async_login(
                entry.data[CONF_BASE_URL], entry.data[CONF_USERNAME], password, errors
            )
            if login is not None:
                return self.async_update_reload_and_abort(
                    entry,
                    data={**entry.data, CONF_PASSWORD: password, CONF_TOKEN: login.token},
                    reason="reauth_successful",
                )

        return self.async_show_form(
            step_id="reauth_confirm",
            data_schema=vol.Schema({vol.Required(CONF_PASSWORD): str}),
            description_placeholders={CONF_USERNAME: entry.data[CONF_USERNAME]},
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> SmartRoomOptionsFlow:
        return SmartRoomOptionsFlow()


class SmartRoomOptionsFlow(OptionsFlow):
    """Handle SmartRoom options."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        options = self.config_entry.options
        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Optional(
                        CONF_SCAN_INTERVAL,
                        default=options.get(CONF_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL),
                    ): vol.All(vol.Coerce(int), vol.Range(min=MIN_SCAN_INTERVAL)),
                    vol.Optional(
                        CONF_RESTORE_SESSION,
                        default=options.get(CONF_RESTORE_SESSION, False),
                    ): bool,
                }
            ),
        )
