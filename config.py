"""
Stack configuration loaded from pulumi.Config().

Provides a typed, immutable view of stack settings. All settings are read from
Pulumi config (e.g. Pulumi.<stack>.yaml, pulumi config set, or
``pulumi up --config prNumber=123`` in CI). Every key is optional; defaults
reproduce the placeholder environment. Used by __main__.main() to pick the
environment key and build CompositionSettings.
"""

from dataclasses import dataclass
from typing import Any, Callable, Protocol

from pr_environment import (
    AccountContext,
    ArchivePayload,
    CompositionSettings,
    ConfigurationError,
    InlinePayload,
    LifecyclePolicy,
)
from pr_environment.composer import DEFAULT_API_URL


class ConfigSource(Protocol):
    """The subset of pulumi.Config used here."""

    def get(self, key: str) -> str | None: ...

    def get_int(self, key: str) -> int | None: ...


def _get_str(config: ConfigSource, key: str) -> str | None:
    return config.get(key)


def _get_int(config: ConfigSource, key: str) -> int | None:
    return config.get_int(key)


def _get_lifecycle(config: ConfigSource, key: str) -> LifecyclePolicy | None:
    raw = config.get(key)
    if raw is None:
        return None
    try:
        return LifecyclePolicy(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in LifecyclePolicy)
        raise ConfigurationError(
            f"{key} must be one of {allowed}, got {raw!r}"
        ) from None


def account_context(identity: Any, region: Any, partition: Any) -> AccountContext:
    """
    AccountContext from the results of aws.get_caller_identity(),
    aws.get_region() and aws.get_partition().
    """
    return AccountContext(
        account=identity.account_id,
        region=region.region,
        partition=partition.partition,
    )


# (key, attribute, parser); parser receives (config, key) and returns value
# or None when the key is unset.
_CONFIG_SPEC: list[tuple[str, str, Callable[[ConfigSource, str], Any]]] = [
    ("prNumber", "pr_number", _get_str),
    ("apiUrl", "api_url", _get_str),
    ("lambdaTimeoutSeconds", "timeout_seconds", _get_int),
    ("lambdaMemoryMb", "memory_mb", _get_int),
    ("lifecyclePolicy", "lifecycle", _get_lifecycle),
    ("lambdaArtifactPath", "artifact_path", _get_str),
]


@dataclass(frozen=True)
class StackConfig:
    """
    Stack configuration from Pulumi config.

    Attributes:
        pr_number: PR identifier; None selects the "default" environment.
        api_url: External endpoint exposed to the function as API_URL.
        timeout_seconds: Function timeout.
        memory_mb: Function memory size.
        lifecycle: Teardown policy for the bucket and log group.
        artifact_path: Zip file or directory with the function code; None
            deploys the placeholder.
    """

    pr_number: str | None = None
    api_url: str = DEFAULT_API_URL
    timeout_seconds: int = 30
    memory_mb: int = 128
    lifecycle: LifecyclePolicy = LifecyclePolicy.EPHEMERAL
    artifact_path: str | None = None

    @classmethod
    def from_pulumi_config(cls, config: ConfigSource) -> "StackConfig":
        """
        Build StackConfig from pulumi.Config(). Unset keys keep their defaults.
        """
        kwargs = {}
        for key, attribute, parser in _CONFIG_SPEC:
            value = parser(config, key)
            if value is not None:
                kwargs[attribute] = value
        return cls(**kwargs)

    def context(self) -> dict[str, Any]:
        """Key-value context consumed by resolve_environment_key."""
        return {"prNumber": self.pr_number}

    def composition_settings(self) -> CompositionSettings:
        payload = (
            ArchivePayload(path=self.artifact_path)
            if self.artifact_path
            else InlinePayload()
        )
        return CompositionSettings(
            api_url=self.api_url,
            timeout_seconds=self.timeout_seconds,
            memory_mb=self.memory_mb,
            lifecycle=self.lifecycle,
            payload=payload,
        )
