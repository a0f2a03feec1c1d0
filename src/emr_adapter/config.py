"""Process configuration for the EMR adapter.

Settings are read from ``OPENMRS_*`` environment variables (or a ``.env``
file) once at start-up and then passed explicitly to every component.
"""

from __future__ import annotations

import pydantic
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ValidationError

# OpenMRS reference application "Outpatient" care setting
DEFAULT_CARE_SETTING_UUID = "6f0c9a92-6f24-11e3-af88-005056821db0"


class EMRSettings(BaseSettings):
    """Connection and default-identifier settings for one OpenMRS instance."""

    model_config = SettingsConfigDict(
        env_prefix="OPENMRS_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    rest_base_url: str = Field(..., description="Legacy REST API root, e.g. .../ws/rest/v1")
    fhir_base_url: str = Field(..., description="FHIR R4 API root, e.g. .../ws/fhir2/R4")
    username: str
    password: SecretStr
    default_location_uuid: str
    default_practitioner_uuid: str
    care_setting_uuid: str = DEFAULT_CARE_SETTING_UUID

    request_timeout: float | None = None

    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def basic_auth(self) -> tuple[str, str]:
        return (self.username, self.password.get_secret_value())


def load_settings(**overrides: object) -> EMRSettings:
    """Build settings from the environment, raising a readable error on gaps."""
    try:
        return EMRSettings(**overrides)
    except pydantic.ValidationError as exc:
        missing = sorted(
            "OPENMRS_" + str(err["loc"][0]).upper()
            for err in exc.errors()
            if err["type"] == "missing"
        )
        if missing:
            raise ValidationError(
                "Missing required OpenMRS environment variables: " + ", ".join(missing)
            ) from exc
        raise ValidationError(f"Invalid OpenMRS settings: {exc}") from exc
