from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

import pytest

from shellware.core.pipeline import CommandPipeline
from shellware.core.types import NOOP_LINE
from shellware.plugins.k8s_guard import (
    K8sEnvironmentGuard,
    kustomize_target,
    parse_context_mappings,
    read_folder_environment,
    resolve_environment,
)


def _context_runner(context: str):
    calls: list[list[str]] = []

    def run(command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[Any]:
        calls.append(list(command))
        return subprocess.CompletedProcess(command, 0, stdout=f"{context}\n")

    run.calls = calls  # type: ignore[attr-defined]
    return run


def _write_overlay(root: Path, name: str, environment: str | None) -> Path:
    folder = root / name
    folder.mkdir(parents=True)
    header = f"# Environment: {environment}\n" if environment else ""
    (folder / "kustomization.yaml").write_text(f"{header}resources:\n  - deployment.yaml\n", encoding="utf-8")
    return folder


def test_parse_context_mappings() -> None:
    raw = "prd.k8s.example.com=production|stg.k8s.example.com=staging|broken"
    assert parse_context_mappings(raw) == {
        "prd.k8s.example.com": "production",
        "stg.k8s.example.com": "staging",
    }
    assert parse_context_mappings(None) == {}


@pytest.mark.parametrize(
    ("context", "expected"),
    [
        ("eks-staging", "staging"),
        ("stg-cluster", "staging"),
        ("production-eu", "production"),
        ("prod", "production"),
        ("prd.k8s", "production"),
        ("minikube", "unknown"),
    ],
)
def test_resolve_environment_fallbacks(context: str, expected: str) -> None:
    assert resolve_environment(context) == expected


def test_exact_mapping_wins_over_fallback() -> None:
    assert resolve_environment("prd-shadow", {"prd-shadow": "staging"}) == "staging"
    assert resolve_environment("prd-shadow-2", {"prd-shadow": "staging"}) == "production"


def test_read_folder_environment(tmp_path: Path) -> None:
    assert read_folder_environment(_write_overlay(tmp_path, "prod", "production")) == "production"
    assert read_folder_environment(_write_overlay(tmp_path, "plain", None)) == ""
    assert read_folder_environment(tmp_path / "missing") == ""


def test_kustomize_target() -> None:
    assert kustomize_target(["kubectl", "apply", "-k", "overlays/prod"]) == ("apply", "overlays/prod")
    assert kustomize_target(["k", "delete", "-k", "'dir'"]) == ("delete", "dir")
    assert kustomize_target(["kubectl", "get", "-k", "dir"]) is None
    assert kustomize_target(["kubectl", "apply", "-k"]) is None
    assert kustomize_target(["kubectl", "apply", "-f", "x.yaml"]) is None


def test_mismatch_blocks(tmp_path: Path) -> None:
    _write_overlay(tmp_path, "overlays/prod", "production")
    guard = K8sEnvironmentGuard(runner=_context_runner("stg.k8s.example.com"), cwd=tmp_path)

    outcome = guard("kubectl apply -k overlays/prod")

    assert outcome.kind == "block"
    assert "Folder environment: production" in outcome.message
    assert "Current context environment: staging" in outcome.message


def test_matching_environment_passes(tmp_path: Path) -> None:
    _write_overlay(tmp_path, "overlays/prod", "production")
    guard = K8sEnvironmentGuard(
        runner=_context_runner("main-cluster"),
        context_mappings="main-cluster=production",
        cwd=tmp_path,
    )
    assert guard("k apply -k overlays/prod").kind == "pass"


def test_untagged_folder_skips_context_lookup(tmp_path: Path) -> None:
    _write_overlay(tmp_path, "overlays/dev", None)
    runner = _context_runner("prod")
    guard = K8sEnvironmentGuard(runner=runner, cwd=tmp_path)

    assert guard("kubectl apply -k overlays/dev").kind == "pass"
    assert runner.calls == []


def test_read_only_verbs_are_ignored(tmp_path: Path) -> None:
    _write_overlay(tmp_path, "overlays/prod", "production")
    guard = K8sEnvironmentGuard(runner=_context_runner("staging"), cwd=tmp_path)
    assert guard("kubectl diff -k overlays/prod").kind == "pass"


def test_missing_kubectl_resolves_unknown_and_blocks_tagged_folder(tmp_path: Path) -> None:
    _write_overlay(tmp_path, "overlays/prod", "production")

    def missing(command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[Any]:
        raise FileNotFoundError(command[0])

    guard = K8sEnvironmentGuard(runner=missing, cwd=tmp_path)
    outcome = guard("kubectl apply -k overlays/prod")
    assert outcome.kind == "block"
    assert "Current context environment: unknown" in outcome.message


def test_block_through_pipeline(tmp_path: Path) -> None:
    _write_overlay(tmp_path, "overlays/prod", "production")
    guard = K8sEnvironmentGuard(runner=_context_runner("staging"), cwd=tmp_path)
    pipeline = CommandPipeline()
    pipeline.register(guard.name, guard, guard.patterns, commands=guard.commands)

    line = "kubectl apply -k overlays/prod"
    result = pipeline.dispatch(line)

    assert result.blocked is True
    assert result.line == NOOP_LINE
    assert result.line != line
    assert "Environment mismatch" in result.message
