from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from pioneer.core.config import Settings, StudyConfig
from pioneer.core.security import PublicKey
from pioneer.services.identity import MemoryPreferenceStore
from pioneer.services.telemetry import PingOptions
from pioneer.study import PioneerUtils

STUDY_ADDON_ID = "study@pioneer.mozilla.org"
OPT_IN_ADDON_ID = "pioneer-opt-in@mozilla.org"


class FakeAddon:
    def __init__(self, addon_id: str, is_active: bool = True) -> None:
        self.id = addon_id
        self.is_active = is_active
        self.uninstalled = False

    async def uninstall(self) -> None:
        self.uninstalled = True


class FakeAddonManager:
    def __init__(self, *addons: FakeAddon) -> None:
        self.addons = {a.id: a for a in addons}

    async def get_addon_by_id(self, addon_id: str) -> FakeAddon | None:
        return self.addons.get(addon_id)


class RecordingTelemetrySink:
    def __init__(self) -> None:
        self.pings: list[tuple[str, dict[str, Any], PingOptions]] = []

    async def submit_external_ping(
        self, ping_type: str, payload: dict[str, Any], options: PingOptions
    ) -> str:
        self.pings.append((ping_type, payload, options))
        return f"ping-{len(self.pings)}"


@pytest.fixture(scope="session")
def rsa_keys() -> tuple[str, str]:
    """(private PEM, public PEM) for a throwaway 2048-bit RSA key."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def settings(rsa_keys) -> Settings:
    _, public_pem = rsa_keys
    return Settings(
        PUBLIC_KEYS={
            "prod": PublicKey(id="pioneer-prod-test", key=public_pem),
            "stage": PublicKey(id="pioneer-stage-test", key=public_pem),
        },
        TELEMETRY_SERVER_URL="https://telemetry.test",
    )


@pytest.fixture
def study_config() -> StudyConfig:
    return StudyConfig(
        study_name="test-study",
        branches=[
            {"name": "control", "weight": 1},
            {"name": "treatment", "weight": 2, "feature": "new-toolbar"},
        ],
    )


@pytest.fixture
def preferences() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture
def telemetry() -> RecordingTelemetrySink:
    return RecordingTelemetrySink()


@pytest.fixture
def opt_in_addon() -> FakeAddon:
    return FakeAddon(OPT_IN_ADDON_ID)


@pytest.fixture
def study_addon() -> FakeAddon:
    return FakeAddon(STUDY_ADDON_ID)


@pytest.fixture
def addons(opt_in_addon, study_addon) -> FakeAddonManager:
    return FakeAddonManager(opt_in_addon, study_addon)


@pytest.fixture
def utils(study_config, preferences, telemetry, addons, settings) -> PioneerUtils:
    return PioneerUtils(
        STUDY_ADDON_ID,
        study_config,
        preferences=preferences,
        telemetry=telemetry,
        addons=addons,
        settings=settings,
    )
