"""Monitor configuration for pylaundry."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pylaundry.exceptions import LaundryConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise LaundryConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class LaundryConfig:
    """Monitor configuration.

    Parameters
    ----------
    api_url : str
        Full URL of the machine status feed.
    organization_id : str or None
        Sent as the ``alliancels-organization-id`` header when set.
    additional_headers : str or None
        Extra request headers as ``"Key=value,Other=value"``.
    poll_interval : float
        Seconds between the start of two poll cycles.
    request_timeout : float
        Total timeout of one feed request in seconds.
    fetch_retries : int
        How many times a failed feed request is retried before the
        cycle is skipped.  ``0`` disables retries.
    retry_delay : float
        Seconds to wait between feed retries.
    stop_timeout : float
        Seconds ``MachineMonitor.stop`` waits for an in-flight poll
        cycle before abandoning it.
    slack_bot_token : str or None
        Bot token used to post notifications.  Without it the monitor
        only logs what it would have sent.
    slack_channel_id : str or None
        Channel notifications are posted to.
    slack_signing_secret : str or None
        Used to verify that interaction requests come from Slack.
    interactions_port : int or None
        Port of the interaction endpoint.  Without it claims and snoops
        cannot be made from chat.
    interactions_host : str
        Address the interaction endpoint binds to.
    debug : bool
        Log every machine's status on every poll cycle.
    """

    api_url: str
    organization_id: str | None = None
    additional_headers: str | None = None
    poll_interval: float = 30.0
    request_timeout: float = 10.0
    fetch_retries: int = 2
    retry_delay: float = 2.0
    stop_timeout: float = 10.0
    slack_bot_token: str | None = None
    slack_channel_id: str | None = None
    slack_signing_secret: str | None = None
    interactions_port: int | None = None
    interactions_host: str = "0.0.0.0"
    debug: bool = False

    def __post_init__(self) -> None:
        if not self.api_url or not self.api_url.strip():
            raise LaundryConfigError("api_url must be non-empty")
        if self.poll_interval <= 0:
            raise LaundryConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.request_timeout <= 0:
            raise LaundryConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.fetch_retries < 0:
            raise LaundryConfigError(f"fetch_retries must not be negative, got {self.fetch_retries}")
        if self.retry_delay < 0:
            raise LaundryConfigError(f"retry_delay must not be negative, got {self.retry_delay}")
        if self.stop_timeout <= 0:
            raise LaundryConfigError(f"stop_timeout must be positive, got {self.stop_timeout}")
        if self.interactions_port is not None and not 0 < self.interactions_port < 65536:
            raise LaundryConfigError(f"interactions_port must be a valid TCP port, got {self.interactions_port}")

    @property
    def notifications_enabled(self) -> bool:
        """Whether both Slack settings are present."""
        return bool(self.slack_bot_token and self.slack_channel_id)

    @classmethod
    def from_env(cls, **overrides: Any) -> LaundryConfig:
        """Create configuration from environment variables.

        Reads ``LAUNDRY_API_URL`` and optional ``LAUNDRY_*`` / ``SLACK_*``
        variables. Explicit keyword arguments override environment values.

        Raises
        ------
        LaundryConfigError
            If the feed URL is missing or a numeric variable is invalid.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "LAUNDRY_API_URL": "api_url",
            "LAUNDRY_ORGANIZATION_ID": "organization_id",
            "LAUNDRY_ADDITIONAL_HEADERS": "additional_headers",
            "SLACK_BOT_TOKEN": "slack_bot_token",
            "SLACK_CHANNEL_ID": "slack_channel_id",
            "SLACK_SIGNING_SECRET": "slack_signing_secret",
            "LAUNDRY_INTERACTIONS_HOST": "interactions_host",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "LAUNDRY_POLL_INTERVAL": ("poll_interval", float),
            "LAUNDRY_REQUEST_TIMEOUT": ("request_timeout", float),
            "LAUNDRY_FETCH_RETRIES": ("fetch_retries", int),
            "LAUNDRY_RETRY_DELAY": ("retry_delay", float),
            "LAUNDRY_STOP_TIMEOUT": ("stop_timeout", float),
            "LAUNDRY_INTERACTIONS_PORT": ("interactions_port", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        if "debug" not in overrides:
            config_kwargs["debug"] = _env_bool(env.get("LAUNDRY_DEBUG"), False)

        config_kwargs.update(overrides)

        if "api_url" not in config_kwargs:
            raise LaundryConfigError("Missing required environment variable: LAUNDRY_API_URL")

        return cls(**config_kwargs)
