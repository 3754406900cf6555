"""
Per-PR ephemeral environment.

The pure core builds a typed resource graph from a PR identifier; the Pulumi
component turns that graph into AWS resources. Use from the Pulumi
entrypoint (e.g. __main__.py):

- **resolve_environment_key**: PR identifier from config, or "default".
- **compose**: bucket, log group, role and function for one environment, plus
  the OutputSet to export. Pure; raises ConfigurationError on bad input.
- **PrEnvironment**: ComponentResource creating the graph's resources;
  exposes bucket_name, function_name and function_arn.
"""

from pr_environment._helpers import resolve_environment_key
from pr_environment.aws import PrEnvironment
from pr_environment.composer import CompositionSettings, compose
from pr_environment.graph import (
    AccountContext,
    ConfigurationError,
    LifecyclePolicy,
    OutputSet,
    ResourceGraph,
)
from pr_environment.payload import ArchivePayload, InlinePayload

__all__ = [
    "AccountContext",
    "ArchivePayload",
    "CompositionSettings",
    "ConfigurationError",
    "InlinePayload",
    "LifecyclePolicy",
    "OutputSet",
    "PrEnvironment",
    "ResourceGraph",
    "compose",
    "resolve_environment_key",
]
