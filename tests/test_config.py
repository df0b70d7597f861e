from __future__ import annotations

from pathlib import Path

import pytest

from pyplace.config import PlaceConfig
from pyplace.exceptions import PlaceConfigError

_ENV_KEYS = (
    "PLACE_APP_NAME",
    "APP_NAME",
    "PLACE_AUTH_TOKEN",
    "AUTH_TOKEN",
    "PLACE_USERNAME",
    "R_USERNAME",
    "PLACE_PASSWORD",
    "R_PASSWORD",
    "PLACE_OAUTH_CLIENT",
    "OAUTH_CLIENT",
    "PLACE_OAUTH_SECRET",
    "OAUTH_SECRET",
    "PLACE_OUTPUT_DIR",
    "PLACE_DOWNLOAD_TIMEOUT",
    "PLACE_DOWNLOAD_RETRIES",
    "PLACE_DOWNLOAD_RETRY_DELAY",
    "PLACE_RUN_TIMEOUT",
    "PLACE_CLEANUP_PARTIAL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_from_env_reads_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLACE_APP_NAME", "archiver")
    monkeypatch.setenv("PLACE_USERNAME", "user")
    monkeypatch.setenv("PLACE_PASSWORD", "pw")
    monkeypatch.setenv("PLACE_OAUTH_CLIENT", "client")
    monkeypatch.setenv("PLACE_OAUTH_SECRET", "secret")
    monkeypatch.setenv("PLACE_OUTPUT_DIR", "/tmp/canvas")
    monkeypatch.setenv("PLACE_DOWNLOAD_RETRIES", "5")
    monkeypatch.setenv("PLACE_CLEANUP_PARTIAL", "yes")

    config = PlaceConfig.from_env()

    assert config.app_name == "archiver"
    assert config.user_agent.startswith("archiver/")
    assert config.has_credentials
    assert config.output_dir == Path("/tmp/canvas")
    assert config.download_retries == 5
    assert config.cleanup_partial is True


def test_from_env_accepts_unprefixed_fallbacks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("R_USERNAME", "legacy-user")
    monkeypatch.setenv("AUTH_TOKEN", "static")
    monkeypatch.setenv("PLACE_AUTH_TOKEN", "preferred")

    config = PlaceConfig.from_env()

    assert config.username == "legacy-user"
    assert config.auth_token == "preferred"


def test_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PLACE_OUTPUT_DIR", "/tmp/ignored")
    monkeypatch.setenv("PLACE_RUN_TIMEOUT", "5")

    config = PlaceConfig.from_env(output_dir=str(tmp_path), run_timeout=0)

    assert config.output_dir == tmp_path
    assert config.run_timeout == 0


def test_non_numeric_env_value_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLACE_DOWNLOAD_TIMEOUT", "soon")

    with pytest.raises(PlaceConfigError):
        PlaceConfig.from_env()


def test_validate_credentials() -> None:
    PlaceConfig(auth_token="tok").validate_credentials()
    PlaceConfig(username="u", password="p", oauth_client="c", oauth_secret="s").validate_credentials()

    with pytest.raises(PlaceConfigError):
        PlaceConfig(username="u", password="p").validate_credentials()


def test_from_env_reads_dotenv_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text(
        "APP_NAME=canvas-bot\n"
        "R_USERNAME=from-file\n"
        "R_PASSWORD=pw\n"
        "OAUTH_CLIENT=client\n"
        "OAUTH_SECRET=secret\n"
        "PLACE_RUN_TIMEOUT=30\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("R_USERNAME", "from-env")

    config = PlaceConfig.from_env(dotenv_path=dotenv)

    assert config.app_name == "canvas-bot"
    assert config.username == "from-env"
    assert config.run_timeout == 30
    config.validate_credentials()


def test_missing_dotenv_file_is_ignored(tmp_path: Path) -> None:
    config = PlaceConfig.from_env(dotenv_path=tmp_path / "absent.env")

    assert config.auth_token is None
