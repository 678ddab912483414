"""AWS session validity marker and re-authentication."""

from __future__ import annotations

import getpass
import os
import shutil
import subprocess
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

MARKER_PREFIX = "aws_session_cache_"
DEFAULT_TTL_SECONDS = 3600

Runner = Callable[..., subprocess.CompletedProcess[Any]]


class AwsSession:
    """Cached view of whether the current AWS profile holds a live session.

    The marker file holds one Unix timestamp. It is refreshed after a
    successful identity check and removed after a failed one; concurrent
    shells may race on it, which at worst costs an extra check.
    """

    def __init__(
        self,
        *,
        aws_bin: str = "aws",
        sso_bin: str = "aws-sso",
        session_dir: Path = Path("/tmp"),
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        runner: Runner = subprocess.run,
        clock: Callable[[], float] = time.time,
        which: Callable[[str], str | None] = shutil.which,
        user: str | None = None,
    ) -> None:
        self.aws_bin = aws_bin
        self.sso_bin = sso_bin
        self.session_dir = session_dir
        self.ttl_seconds = ttl_seconds
        self._runner = runner
        self._clock = clock
        self._which = which
        self._user = user

    @property
    def user(self) -> str:
        if self._user is None:
            self._user = getpass.getuser()
        return self._user

    @staticmethod
    def profile() -> str:
        return os.getenv("AWS_PROFILE") or "default"

    def marker_path(self, profile: str | None = None) -> Path:
        return self.session_dir / f"{MARKER_PREFIX}{self.user}_{profile or self.profile()}"

    def marker_fresh(self) -> bool:
        """Whether the marker alone vouches for the session."""

        try:
            raw = self.marker_path().read_text(encoding="utf-8").strip()
            stamp = int(raw)
        except (OSError, ValueError):
            return False
        return self._clock() - stamp < self.ttl_seconds

    def is_valid(self) -> bool:
        if self.marker_fresh():
            return True
        if self._caller_identity_ok():
            self._write_marker()
            return True
        self._remove_marker()
        return False

    def refresh(self) -> bool:
        """Run the SSO login flow and re-check the identity."""

        self._remove_marker()
        command = self._login_command()
        logger.debug("aws.session_login command={}", " ".join(command))
        try:
            self._runner(command, stdout=sys.stderr, check=False)
        except OSError as error:
            logger.error("aws.session_login_failed command={} error={}", command[0], error)
            return False
        if self._caller_identity_ok():
            self._write_marker()
            return True
        return False

    def ensure_valid(self) -> bool:
        if self.is_valid():
            return True
        logger.warning("aws.session_expired profile={} refreshing", self.profile())
        if self.refresh():
            logger.debug("aws.session_refreshed profile={}", self.profile())
            return True
        logger.error("aws.session_refresh_failed profile={}", self.profile())
        return False

    def clear_all(self) -> int:
        """Remove every marker of the current user, across profiles."""

        cleared = 0
        for marker in self.session_dir.glob(f"{MARKER_PREFIX}{self.user}_*"):
            try:
                marker.unlink()
            except OSError:
                logger.debug("aws.session_clear_failed path={}", marker)
                continue
            cleared += 1
        return cleared

    def _login_command(self) -> list[str]:
        if self._which(self.sso_bin) is not None:
            return [self.sso_bin, "login"]
        profile = os.getenv("AWS_PROFILE")
        if profile:
            return [self.aws_bin, "sso", "login", "--profile", profile]
        return [self.aws_bin, "sso", "login"]

    def _caller_identity_ok(self) -> bool:
        try:
            completed = self._runner(
                [self.aws_bin, "sts", "get-caller-identity"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as error:
            logger.debug("aws.identity_check_failed error={}", error)
            return False
        return completed.returncode == 0

    def _write_marker(self) -> None:
        try:
            self.session_dir.mkdir(parents=True, exist_ok=True)
            self.marker_path().write_text(f"{int(self._clock())}\n", encoding="utf-8")
        except OSError as error:
            logger.debug("aws.session_marker_write_failed error={}", error)

    def _remove_marker(self) -> None:
        try:
            self.marker_path().unlink(missing_ok=True)
        except OSError as error:
            logger.debug("aws.session_marker_remove_failed error={}", error)
