"""Block kustomize deployments aimed at the wrong cluster environment."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

from shellware.core.command_detector import CommandDetector
from shellware.core.lexer import tokenize, unquote
from shellware.core.types import PluginOutcome

MUTATING_VERBS = frozenset({"apply", "delete", "replace"})
KUSTOMIZATION_FILE = "kustomization.yaml"
UNKNOWN_ENVIRONMENT = "unknown"

_ENVIRONMENT_COMMENT_RE = re.compile(r"^# Environment:\s*(?P<env>.*?)\s*$")
_FALLBACK_ENVIRONMENTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("staging", "stg"), "staging"),
    (("production", "prod", "prd"), "production"),
)

Runner = Callable[..., subprocess.CompletedProcess[Any]]


def parse_context_mappings(raw: str | None) -> dict[str, str]:
    """Parse ``ctx=env|ctx=env`` into a dict, keeping the first entry per context."""

    mappings: dict[str, str] = {}
    if not raw:
        return mappings
    for item in raw.split("|"):
        context, sep, environment = item.partition("=")
        context = context.strip()
        if not sep or not context:
            continue
        mappings.setdefault(context, environment.strip())
    return mappings


def resolve_environment(context: str, mappings: dict[str, str] | None = None) -> str:
    if mappings and context in mappings:
        return mappings[context]
    for markers, environment in _FALLBACK_ENVIRONMENTS:
        if any(marker in context for marker in markers):
            return environment
    return UNKNOWN_ENVIRONMENT


def read_folder_environment(folder: Path) -> str:
    """Environment tag of a kustomize folder, empty when untagged."""

    try:
        content = (folder / KUSTOMIZATION_FILE).read_text(encoding="utf-8")
    except OSError:
        return ""
    for line in content.splitlines():
        match = _ENVIRONMENT_COMMENT_RE.match(line)
        if match is not None:
            return match.group("env")
    return ""


def kustomize_target(words: list[str]) -> tuple[str, str] | None:
    """``(verb, folder)`` for ``kubectl <verb> ... -k <folder>``, else None."""

    if "-k" not in words:
        return None
    flag = words.index("-k")
    if flag + 1 >= len(words):
        return None
    verb = next((word for word in words[:flag] if word in MUTATING_VERBS), None)
    if verb is None:
        return None
    return verb, unquote(words[flag + 1])


class K8sEnvironmentGuard:
    """Compare a kustomize folder's ``# Environment:`` tag with the current context."""

    name = "k8s_environment_validation"
    patterns = ("kubectl*-k*", "k*-k*", "*kubectl*-k*", "*k*-k*")
    commands = ("kubectl", "k")

    def __init__(
        self,
        *,
        kubectl_bin: str = "kubectl",
        context_mappings: str | None = None,
        runner: Runner = subprocess.run,
        detector: CommandDetector | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.kubectl_bin = kubectl_bin
        self.mappings = parse_context_mappings(context_mappings)
        self._runner = runner
        self._detector = detector or CommandDetector()
        self._cwd = cwd

    def __call__(self, line: str) -> PluginOutcome:
        contexts = self._detector.detect(line, self.commands)
        if not contexts:
            return PluginOutcome.no_opinion()

        for context in contexts:
            words = [token.text for token in tokenize(context.text) if not token.is_operator]
            target = kustomize_target(words)
            if target is None:
                continue
            verb, folder = target
            folder_env = read_folder_environment(self._resolve(folder))
            if not folder_env:
                logger.debug("k8s.untagged folder={}", folder)
                continue
            context_env = self.current_environment()
            if folder_env != context_env:
                logger.debug("k8s.mismatch folder_env={} context_env={}", folder_env, context_env)
                return PluginOutcome.block(mismatch_message(verb, folder, folder_env, context_env))
            logger.debug("k8s.validated env={}", folder_env)
        return PluginOutcome.no_opinion()

    def current_context(self) -> str:
        try:
            completed = self._runner(
                [self.kubectl_bin, "config", "current-context"],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as error:
            logger.warning("k8s.current_context_failed error={}", error)
            return ""
        if completed.returncode != 0:
            return ""
        return (completed.stdout or "").strip()

    def current_environment(self) -> str:
        context = self.current_context()
        environment = resolve_environment(context, self.mappings)
        logger.debug("k8s.context name={!r} env={}", context, environment)
        return environment

    def _resolve(self, folder: str) -> Path:
        path = Path(folder).expanduser()
        if self._cwd is not None and not path.is_absolute():
            return self._cwd / path
        return path


def mismatch_message(verb: str, folder: str, folder_env: str, context_env: str) -> str:
    return "\n".join((
        "Environment mismatch!",
        f"  Command: kubectl {verb} -k {folder}",
        f"  Folder environment: {folder_env}",
        f"  Current context environment: {context_env}",
        "  Command blocked to prevent accidental deployment to wrong environment.",
    ))
