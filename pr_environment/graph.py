"""
Typed resource graph for one PR environment.

Nodes are frozen dataclasses (StorageResource, LogDestination,
PermissionPrincipal, ComputeResource) keyed by a logical id. Edges make the
two relationships explicit as data: ``GRANTS_ACCESS_TO`` (principal to the
resource a grant targets) and ``DEPENDS_ON`` (the target is created before
the source and destroyed after it). The graph is built by
``composer.compose`` and handed to the realization layer; nothing here talks
to Pulumi or AWS.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from pr_environment.payload import Payload

# Logical ids of the four nodes every environment owns.
STORAGE: str = "storage"
LOG_DESTINATION: str = "log_destination"
PRINCIPAL: str = "principal"
COMPUTE: str = "compute"


class ConfigurationError(ValueError):
    """Raised when an environment cannot be composed from its inputs."""


def _read_only(value: Mapping) -> Mapping:
    """A private, read-only copy of value."""
    return MappingProxyType(dict(value))


class LifecyclePolicy(str, Enum):
    """What happens to a resource when its environment is torn down."""

    EPHEMERAL = "ephemeral"
    RETAIN = "retain"


class EdgeKind(str, Enum):
    GRANTS_ACCESS_TO = "grants_access_to"
    DEPENDS_ON = "depends_on"


@dataclass(frozen=True)
class AccountContext:
    """
    Provider scope an environment is deployed into.

    Attributes:
        account: 12-digit AWS account id; suffixes the bucket name.
        region: AWS region (e.g. "us-east-1").
        partition: ARN partition ("aws", "aws-cn", "aws-us-gov").
    """

    account: str
    region: str
    partition: str = "aws"


@dataclass(frozen=True)
class StorageResource:
    name: str
    arn: str
    lifecycle: LifecyclePolicy
    encrypted: bool = True
    versioned: bool = False
    tags: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "tags", _read_only(self.tags))

    @property
    def auto_delete_objects(self) -> bool:
        """Objects are emptied on teardown only under the ephemeral policy."""
        return self.lifecycle is LifecyclePolicy.EPHEMERAL


@dataclass(frozen=True)
class LogDestination:
    name: str
    arn: str
    retention_days: int
    lifecycle: LifecyclePolicy
    tags: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "tags", _read_only(self.tags))


@dataclass(frozen=True)
class Grant:
    """
    One Allow statement scoped to a single node of the same environment.

    Attributes:
        sid: Statement id, unique within the principal's policy.
        actions: IAM actions, sorted.
        resources: ARNs the actions apply to, sorted.
        target: Logical id of the node this grant gives access to.
    """

    sid: str
    actions: tuple[str, ...]
    resources: tuple[str, ...]
    target: str

    def statement(self) -> dict:
        return {
            "Sid": self.sid,
            "Effect": "Allow",
            "Action": list(self.actions),
            "Resource": list(self.resources),
        }


@dataclass(frozen=True)
class PermissionPrincipal:
    name: str
    arn: str
    assumed_by: str
    description: str
    grants: frozenset[Grant] = frozenset()
    tags: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "tags", _read_only(self.tags))

    def with_grant(self, grant: Grant) -> "PermissionPrincipal":
        """Return a copy holding grant as well; adding a held grant is a no-op."""
        return PermissionPrincipal(
            name=self.name,
            arn=self.arn,
            assumed_by=self.assumed_by,
            description=self.description,
            grants=self.grants | {grant},
            tags=self.tags,
        )

    def policy_document(self) -> str:
        """IAM policy JSON for the grants, statements ordered by sid."""
        statements = [g.statement() for g in sorted(self.grants, key=lambda g: g.sid)]
        return json.dumps({"Version": "2012-10-17", "Statement": statements})

    def assume_role_policy(self) -> str:
        return json.dumps(
            {
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {"Service": self.assumed_by},
                        "Action": "sts:AssumeRole",
                    }
                ],
            }
        )


@dataclass(frozen=True)
class ComputeResource:
    """
    The Lambda function of an environment.

    ``role`` and ``log_destination`` are logical ids of nodes in the same
    graph, not copies of them.
    """

    name: str
    arn: str
    role: str
    log_destination: str
    environment: Mapping[str, str]
    timeout_seconds: int
    memory_mb: int
    payload: Payload
    tags: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "environment", _read_only(self.environment))
        object.__setattr__(self, "tags", _read_only(self.tags))


Node = Union[StorageResource, LogDestination, PermissionPrincipal, ComputeResource]


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    kind: EdgeKind


@dataclass(frozen=True)
class OutputSet:
    """
    Values surfaced after deployment.

    Attributes:
        bucket_name: Name of the environment's S3 bucket.
        function_name: Stable identifier of the Lambda function.
        function_arn: Invocable address of the Lambda function.
    """

    bucket_name: str
    function_name: str
    function_arn: str

    def as_dict(self) -> dict[str, str]:
        return {
            "s3_bucket_name": self.bucket_name,
            "lambda_function_name": self.function_name,
            "lambda_function_arn": self.function_arn,
        }


@dataclass(frozen=True)
class ResourceGraph:
    """All resources of one environment and the edges between them."""

    environment_key: str
    nodes: Mapping[str, Node]
    edges: tuple[Edge, ...]

    def __post_init__(self):
        object.__setattr__(self, "nodes", _read_only(self.nodes))

    @property
    def storage(self) -> StorageResource:
        return self.nodes[STORAGE]

    @property
    def log_destination(self) -> LogDestination:
        return self.nodes[LOG_DESTINATION]

    @property
    def principal(self) -> PermissionPrincipal:
        return self.nodes[PRINCIPAL]

    @property
    def compute(self) -> ComputeResource:
        return self.nodes[COMPUTE]

    def names(self) -> set[str]:
        """Every physical name derived for this environment."""
        return {node.name for node in self.nodes.values()}

    def edges_from(self, source: str, kind: EdgeKind | None = None) -> list[Edge]:
        return [
            e
            for e in self.edges
            if e.source == source and (kind is None or e.kind is kind)
        ]

    def creation_order(self) -> list[str]:
        """
        Logical ids ordered so every node comes after what it depends on.

        Both edge kinds count: a principal is created after the resources its
        grants name. Ties are broken by logical id so the order is stable.
        """
        remaining = {node_id: set() for node_id in self.nodes}
        for edge in self.edges:
            remaining[edge.source].add(edge.target)

        order: list[str] = []
        while remaining:
            ready = sorted(n for n, deps in remaining.items() if not deps)
            if not ready:
                raise ConfigurationError(
                    f"dependency cycle among {sorted(remaining)}"
                )
            for node_id in ready:
                order.append(node_id)
                del remaining[node_id]
            for deps in remaining.values():
                deps.difference_update(ready)
        return order

    def teardown_order(self) -> list[str]:
        """Reverse of creation_order: dependents are destroyed first."""
        return list(reversed(self.creation_order()))
