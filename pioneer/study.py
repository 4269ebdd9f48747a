"""Utilities for making Pioneer studies.

``PioneerUtils`` is the one object a study add-on holds on to. The host
services it needs (preference store, telemetry sink, add-on manager) are
passed in explicitly, so branch assignment and ping building can be
exercised without a browser.
"""

from __future__ import annotations

import enum
import json
import logging
from typing import Any

from pioneer.core.config import Settings, StudyConfig
from pioneer.core.config import settings as default_settings
from pioneer.core.exceptions import AddonNotFoundError, InvalidEventError
from pioneer.core.logging import get_study_logger
from pioneer.core.security import Encrypter, PublicKey, get_public_key
from pioneer.services.addons import AddonManager
from pioneer.services.identity import IdentityProvider, PreferenceStore
from pioneer.services.sampling import Branch, choose_weighted
from pioneer.services.telemetry import PingOptions, TelemetrySink


class StudyEvent(str, enum.Enum):
    INELIGIBLE = "ineligible"
    EXPIRED = "expired"
    USER_DISABLE = "user-disable"
    ENDED_POSITIVE = "ended-positive"
    ENDED_NEUTRAL = "ended-neutral"
    ENDED_NEGATIVE = "ended-negative"


EVENT_SCHEMA_NAME = "event"
EVENT_SCHEMA_VERSION = 1


def dump_json(data: Any) -> str:
    """Compact JSON as ``JSON.stringify`` writes it. NaN and infinity raise ``ValueError``."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


class PioneerUtils:
    """Branch assignment, encrypted pings and study lifecycle for one study.

    Parameters
    ----------
    addon_id : str
        ID of the study add-on itself; uninstalled when the study ends.
    config : StudyConfig
        Study name, telemetry env, branches and dev mode flag.
    preferences : PreferenceStore
        Where the Pioneer ID and the opt-out studies pref live.
    telemetry : TelemetrySink
        Receives the assembled pings.
    addons : AddonManager
        Used for the opt-in check and for uninstalling.
    """

    def __init__(
        self,
        addon_id: str,
        config: StudyConfig,
        *,
        preferences: PreferenceStore,
        telemetry: TelemetrySink,
        addons: AddonManager,
        identity: IdentityProvider | None = None,
        encrypter: Encrypter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.addon_id = addon_id
        self.config = config
        self.preferences = preferences
        self.telemetry = telemetry
        self.addons = addons
        self.settings = settings or default_settings
        self.identity = identity or IdentityProvider(preferences, self.settings.ID_PREF)
        self.encrypter = encrypter
        self._logger: logging.Logger | None = None

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def get_public_key(self) -> PublicKey:
        """Public key for the configured telemetry environment."""
        return get_public_key(self.config.telemetry_env, self.settings.PUBLIC_KEYS)

    def setup_encrypter(self) -> Encrypter:
        if self.encrypter is None:
            self.encrypter = Encrypter(
                self.get_public_key(),
                algorithm=self.settings.JWE_ALGORITHM,
                encryption=self.settings.JWE_ENCRYPTION,
            )
        return self.encrypter

    async def _encrypt_data(self, data: str) -> str:
        return await self.setup_encrypter().encrypt(data)

    # ------------------------------------------------------------------
    # Identity and eligibility
    # ------------------------------------------------------------------

    async def get_pioneer_id(self) -> str:
        return await self.identity.get_id()

    async def is_shield_enabled(self) -> bool:
        return bool(await self.preferences.get(self.settings.SHIELD_PREF, True))

    async def is_user_opted_in(self) -> bool:
        """The user is opted in when the opt-in add-on is installed and active."""
        if not await self.is_shield_enabled():
            return False
        addon = await self.addons.get_addon_by_id(self.settings.OPT_IN_ADDON_ID)
        return addon is not None and addon.is_active

    # ------------------------------------------------------------------
    # Pings
    # ------------------------------------------------------------------

    def get_ping_size(self, payload: Any) -> int:
        """Size in bytes of ``payload`` serialized as compact UTF-8 JSON."""
        encoded = dump_json(payload)
        return len(encoded.encode("utf-8"))

    async def build_encrypted_payload(
        self, schema_name: str, schema_version: int, data: Any
    ) -> dict[str, Any]:
        """Telemetry payload carrying ``data`` encrypted for the study's key."""
        pk = self.get_public_key()
        return {
            "encryptedData": await self._encrypt_data(dump_json(data)),
            "encryptionKeyId": pk.id,
            "pioneerId": await self.get_pioneer_id(),
            "studyName": self.config.study_name,
            "schemaName": schema_name,
            "schemaVersion": schema_version,
        }

    async def get_encrypted_ping_size(self, schema_name: str, schema_version: int, data: Any) -> int:
        return self.get_ping_size(
            await self.build_encrypted_payload(schema_name, schema_version, data)
        )

    async def submit_encrypted_ping(
        self,
        schema_name: str,
        schema_version: int,
        data: Any,
        force: bool = False,
    ) -> str | None:
        """Encrypt ``data`` and submit it as a Pioneer ping.

        Returns the submitted ping's id, or ``None`` when the user is no
        longer opted in and ``force`` is not set.
        """
        if not force and not await self.is_user_opted_in():
            self.log.debug("User is not opted in, dropping %s ping", schema_name)
            return None

        payload = await self.build_encrypted_payload(schema_name, schema_version, data)
        options = PingOptions(add_client_id=True, add_environment=True)
        return await self.telemetry.submit_external_ping(self.settings.PING_TYPE, payload, options)

    def get_available_events(self) -> dict[str, str]:
        return {event.name: event.value for event in StudyEvent}

    async def submit_event_ping(self, event_id: StudyEvent | str, force: bool = False) -> str | None:
        try:
            event = StudyEvent(event_id)
        except ValueError:
            raise InvalidEventError(f"Invalid event ID: {event_id}")
        return await self.submit_encrypted_ping(
            EVENT_SCHEMA_NAME, EVENT_SCHEMA_VERSION, {"eventId": event.value}, force=force
        )

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def choose_branch(self) -> Branch:
        """Choose one of ``config.branches`` based on their ``weight``.

        Deterministic in the study name and the user's Pioneer ID: as long as
        neither changes, the same branch is returned.
        """
        pioneer_id = await self.get_pioneer_id()
        hash_key = f"{self.config.study_name}/{pioneer_id}"
        return choose_weighted(self.config.branches, hash_key)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def end_study(self, event_id: StudyEvent | str = StudyEvent.ENDED_NEUTRAL) -> None:
        """Submit the ending event ping, then uninstall the study add-on."""
        await self.submit_event_ping(event_id, force=True)
        await self.uninstall()

    async def uninstall(self) -> None:
        addon = await self.addons.get_addon_by_id(self.addon_id)
        if addon is None:
            raise AddonNotFoundError(f"Could not find addon with ID: {self.addon_id}")
        self.log.info("Uninstalling study addon %s", self.addon_id)
        await addon.uninstall()

    @property
    def log(self) -> logging.Logger:
        """Study logger, named ``pioneer.<study_name>``."""
        if self._logger is None:
            self._logger = get_study_logger(self.config.study_name, self.config.dev_mode)
        return self._logger
