from typing import Literal

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings

from pioneer.core.security import PublicKey
from pioneer.services.sampling import Branch


class Settings(BaseSettings):
    PROJECT_NAME: str = "pioneer-utils"

    DATABASE_URL: str = "sqlite+aiosqlite:///./pioneer.db"

    # Preferences
    ID_PREF: str = "extensions.pioneer.cachedClientID"
    SHIELD_PREF: str = "app.shield.optoutstudies.enabled"
    OPT_IN_ADDON_ID: str = "pioneer-opt-in@mozilla.org"

    # Encryption, keyed by telemetry env ("prod", "stage")
    PUBLIC_KEYS: dict[str, PublicKey] = {}
    JWE_ALGORITHM: str = "RSA-OAEP"
    JWE_ENCRYPTION: str = "A256GCM"

    # Telemetry
    PING_TYPE: str = "pioneer-study"
    TELEMETRY_SERVER_URL: str = "https://incoming.telemetry.mozilla.org"
    TELEMETRY_TIMEOUT: float = 10.0
    APP_NAME: str = "Firefox"
    APP_VERSION: str = "0"
    APP_UPDATE_CHANNEL: str = "release"
    APP_BUILD_ID: str = "0"

    model_config = {"env_prefix": "PIONEER_", "env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


class StudyConfig(BaseModel):
    """Per-study configuration passed in by the study add-on."""

    study_name: str
    # Which telemetry environment to send data to
    telemetry_env: Literal["prod", "stage"] = "prod"
    branches: list[Branch] = []
    # Extra logging for developers
    dev_mode: bool = False

    @model_validator(mode="after")
    def _unique_branch_names(self) -> "StudyConfig":
        names = [b.name for b in self.branches]
        if len(names) != len(set(names)):
            raise ValueError("Branch names must be unique")
        return self
