from __future__ import annotations

from pathlib import Path

import pytest


class FakeSession:
    """Stand-in for AwsSession that never shells out."""

    def __init__(self, *, valid: bool = True) -> None:
        self.valid = valid
        self.ensure_calls = 0
        self.clear_calls = 0

    def ensure_valid(self) -> bool:
        self.ensure_calls += 1
        return self.valid

    def clear_all(self) -> int:
        self.clear_calls += 1
        return 0


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "SHELLWARE_DEBUG",
        "PLUGINS_DEBUG",
        "AWS_MIDDLEWARE_DEBUG",
        "AWS_PROFILE",
        "SHELLWARE_DISABLED_PLUGINS",
        "SHELLWARE_K8S_CONTEXT_MAPPINGS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SHELLWARE_SESSION_DIR", str(tmp_path / "sessions"))
    for name in ("SHELLWARE_AWS_BIN", "SHELLWARE_AWS_SSO_BIN", "SHELLWARE_KUBECTL_BIN"):
        monkeypatch.setenv(name, str(tmp_path / "missing-bin"))
    monkeypatch.chdir(tmp_path)
