"""Built-in command plugins."""

from __future__ import annotations

from shellware.config import Settings
from shellware.core.registry import PluginRegistry
from shellware.hookspecs import hookimpl
from shellware.plugins.aws_session import AwsSession
from shellware.plugins.k8s_guard import K8sEnvironmentGuard
from shellware.plugins.s3_uri import S3UriPlugin

__all__ = ["BuiltinPlugins", "K8sEnvironmentGuard", "S3UriPlugin"]


class BuiltinPlugins:
    """Provider registering the bundled AWS and Kubernetes plugins."""

    @hookimpl
    def register_command_plugins(self, registry: PluginRegistry, settings: Settings) -> None:
        session = AwsSession(
            aws_bin=settings.aws_bin,
            sso_bin=settings.aws_sso_bin,
            session_dir=settings.session_dir,
            ttl_seconds=settings.session_ttl_seconds,
        )
        s3 = S3UriPlugin(session=session)
        registry.register(s3.name, s3, s3.patterns, commands=s3.commands)

        guard = K8sEnvironmentGuard(kubectl_bin=settings.kubectl_bin, context_mappings=settings.k8s_context_mappings)
        registry.register(guard.name, guard, guard.patterns, commands=guard.commands)
