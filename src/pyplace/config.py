"""Client configuration for pyplace."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from pyplace._constants import (
    ACCESS_TOKEN_URL,
    CHANNEL_TEAM_OWNER,
    REALTIME_ORIGIN,
    REALTIME_URL,
    package_version,
)
from pyplace.exceptions import PlaceConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class PlaceConfig:
    """Client configuration.

    Parameters
    ----------
    app_name : str
        Application identity, sent as ``<app_name>/<version>`` in the
        ``User-Agent`` header.
    auth_token : str or None
        Static bearer token. When set, no password grant is performed
        and the token never refreshes.
    username : str or None
        Account name for the OAuth password grant.
    password : str or None
        Account password for the OAuth password grant.
    oauth_client : str or None
        OAuth client id (HTTP basic auth user on the token endpoint).
    oauth_secret : str or None
        OAuth client secret.
    output_dir : Path
        Directory receiving tile artifacts, manifests and composites.
    realtime_url : str
        Websocket endpoint of the realtime GraphQL gateway.
    realtime_origin : str
        ``Origin`` header required by the realtime gateway.
    access_token_url : str
        OAuth access-token endpoint.
    team_owner : str
        Channel owner used in subscription inputs.
    download_timeout : float
        Total seconds allowed for one tile download attempt.
    download_retries : int
        Extra attempts after a failed tile download.
    download_retry_delay : float
        Base delay in seconds between download attempts (linear backoff).
    run_timeout : float
        Seconds an ingestion run may take before it is abandoned.
        ``0`` disables the timeout.
    cleanup_partial : bool
        Delete artifacts of earlier epochs that never produced a
        composite before starting a new epoch.
    """

    app_name: str = "pyplace"
    auth_token: str | None = None
    username: str | None = None
    password: str | None = None
    oauth_client: str | None = None
    oauth_secret: str | None = None
    output_dir: Path = Path("images")
    realtime_url: str = REALTIME_URL
    realtime_origin: str = REALTIME_ORIGIN
    access_token_url: str = ACCESS_TOKEN_URL
    team_owner: str = CHANNEL_TEAM_OWNER
    download_timeout: float = 60.0
    download_retries: int = 2
    download_retry_delay: float = 1.0
    run_timeout: float = 600.0
    cleanup_partial: bool = False

    @property
    def user_agent(self) -> str:
        """``User-Agent`` sent on every request: ``<app_name>/<version>``."""
        return f"{self.app_name}/{package_version()}"

    @property
    def has_credentials(self) -> bool:
        """Whether a full password-grant credential set is configured."""
        return all((self.username, self.password, self.oauth_client, self.oauth_secret))

    def validate_credentials(self) -> None:
        """Raise :class:`PlaceConfigError` if no way to authenticate exists."""
        if self.auth_token:
            return
        if not self.has_credentials:
            raise PlaceConfigError(
                "Set PLACE_AUTH_TOKEN, or PLACE_USERNAME, PLACE_PASSWORD, "
                "PLACE_OAUTH_CLIENT and PLACE_OAUTH_SECRET"
            )

    @classmethod
    def from_env(cls, *, dotenv_path: str | os.PathLike[str] | None = None, **overrides: Any) -> PlaceConfig:
        """Create configuration from environment variables.

        Reads ``PLACE_*`` variables. The unprefixed names ``APP_NAME``,
        ``AUTH_TOKEN``, ``R_USERNAME``, ``R_PASSWORD``, ``OAUTH_CLIENT`` and
        ``OAUTH_SECRET`` are accepted as fallbacks. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        dotenv_path : path-like, optional
            ``.env`` file read before the process environment. Variables
            already set in the environment win over the file; a missing
            file is ignored.
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        PlaceConfig
            Populated configuration.
        """
        env: dict[str, str | None] = {}
        if dotenv_path is not None:
            env.update(dotenv_values(dotenv_path))
        env.update(os.environ)

        _ENV_CONFIG_MAP = {
            "app_name": ("PLACE_APP_NAME", "APP_NAME"),
            "auth_token": ("PLACE_AUTH_TOKEN", "AUTH_TOKEN"),
            "username": ("PLACE_USERNAME", "R_USERNAME"),
            "password": ("PLACE_PASSWORD", "R_PASSWORD"),
            "oauth_client": ("PLACE_OAUTH_CLIENT", "OAUTH_CLIENT"),
            "oauth_secret": ("PLACE_OAUTH_SECRET", "OAUTH_SECRET"),
            "realtime_url": ("PLACE_REALTIME_URL",),
            "realtime_origin": ("PLACE_REALTIME_ORIGIN",),
            "access_token_url": ("PLACE_ACCESS_TOKEN_URL",),
            "team_owner": ("PLACE_TEAM_OWNER",),
        }
        config_kwargs: dict[str, Any] = {}
        for field_name, env_keys in _ENV_CONFIG_MAP.items():
            for env_key in env_keys:
                val = env.get(env_key)
                if val:
                    config_kwargs[field_name] = val
                    break

        output_env = env.get("PLACE_OUTPUT_DIR")
        if output_env and "output_dir" not in overrides:
            config_kwargs["output_dir"] = Path(output_env)

        # Numeric fields, handled separately
        _ENV_NUMERIC_MAP = {
            "PLACE_DOWNLOAD_TIMEOUT": ("download_timeout", float),
            "PLACE_DOWNLOAD_RETRIES": ("download_retries", int),
            "PLACE_DOWNLOAD_RETRY_DELAY": ("download_retry_delay", float),
            "PLACE_RUN_TIMEOUT": ("run_timeout", float),
        }
        for env_key, (field_name, convert) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = convert(val)
            except ValueError as exc:
                raise PlaceConfigError(f"{env_key} must be numeric, got {val!r}") from exc

        if "cleanup_partial" not in overrides:
            config_kwargs["cleanup_partial"] = _env_bool(env.get("PLACE_CLEANUP_PARTIAL"), False)

        config_kwargs.update(overrides)
        if "output_dir" in config_kwargs:
            config_kwargs["output_dir"] = Path(config_kwargs["output_dir"])

        return cls(**config_kwargs)
