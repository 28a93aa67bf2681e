from __future__ import annotations

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wfm_resilience.circuit_breaker import CircuitBreakerConfig
from wfm_resilience.logging import get_log_level_value

DEFAULT_ENV_PREFIX = "WFM_BREAKER_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven defaults for breakers created by a service.

    Reads ``WFM_BREAKER_FAILURE_THRESHOLD``, ``WFM_BREAKER_OPEN_TIMEOUT_SECONDS``
    and so on. Subclass and override ``model_config`` with
    ``prefixed_settings_config`` to read a different prefix.
    """

    model_config = prefixed_settings_config(DEFAULT_ENV_PREFIX)

    failure_threshold: int = 5
    success_threshold: int = 2
    open_timeout_seconds: float = 30.0
    half_open_max_calls: int | None = None
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().upper()
            get_log_level_value(normalized)
            return normalized
        return value

    @model_validator(mode="after")
    def _validate_breaker_settings(self) -> BreakerSettings:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")
        if self.open_timeout_seconds < 0:
            raise ValueError("open_timeout_seconds must be >= 0")
        if self.half_open_max_calls is not None and self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be >= 1 when provided")
        return self

    def to_config(self) -> CircuitBreakerConfig:
        """Build a breaker configuration from these settings."""
        return CircuitBreakerConfig(
            failure_threshold=self.failure_threshold,
            success_threshold=self.success_threshold,
            open_timeout=self.open_timeout_seconds,
            half_open_max_calls=self.half_open_max_calls,
        )
