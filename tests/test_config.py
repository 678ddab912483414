from __future__ import annotations

from pathlib import Path

import pytest

from shellware.config import get_settings
from shellware.errors import ConfigurationError, ShellwareError


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SHELLWARE_SESSION_DIR")
    settings = get_settings()
    assert settings.cache_size == 200
    assert settings.session_ttl_seconds == 3600
    assert settings.session_dir == Path("/tmp")
    assert settings.disabled_plugins == []


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHELLWARE_CACHE_SIZE", "16")
    monkeypatch.setenv("SHELLWARE_DISABLED_PLUGINS", '["aws_s3_uri"]')
    monkeypatch.setenv("SHELLWARE_K8S_CONTEXT_MAPPINGS", "prd=production")
    settings = get_settings()
    assert settings.cache_size == 16
    assert settings.disabled_plugins == ["aws_s3_uri"]
    assert settings.k8s_context_mappings == "prd=production"


def test_dotenv_file_is_read(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("SHELLWARE_SESSION_TTL_SECONDS=60\n", encoding="utf-8")
    assert get_settings().session_ttl_seconds == 60


def test_invalid_values_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        get_settings(cache_size=1)
    assert isinstance(exc_info.value, ShellwareError)
