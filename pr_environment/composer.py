"""
Build the resource graph of one PR environment.

``compose`` is a pure function of (environment key, account context,
settings): same inputs, same names, same grants. It either returns a
complete graph and its outputs or raises ConfigurationError; it never
returns a partial graph and never touches AWS.

Every physical name embeds the environment key, so environments composed in
the same account cannot collide. Bucket names are lower-cased, which means
keys differing only in case ("Abc" vs "abc") share a bucket name; the
provider reports that conflict at deploy time.
"""

import logging
from dataclasses import dataclass, field

from pr_environment import _helpers
from pr_environment.graph import (
    COMPUTE,
    LOG_DESTINATION,
    PRINCIPAL,
    STORAGE,
    AccountContext,
    ComputeResource,
    ConfigurationError,
    Edge,
    EdgeKind,
    Grant,
    LifecyclePolicy,
    LogDestination,
    OutputSet,
    PermissionPrincipal,
    ResourceGraph,
    StorageResource,
)
from pr_environment.payload import InlinePayload, Payload

logger = logging.getLogger(__name__)

DEFAULT_API_URL: str = "https://jsonplaceholder.typicode.com/posts/1"

# Provider limits on physical names.
MAX_BUCKET_NAME: int = 63
MAX_FUNCTION_NAME: int = 64
MAX_ROLE_NAME: int = 64

# Lambda's accepted ranges.
TIMEOUT_RANGE: tuple[int, int] = (1, 900)
MEMORY_RANGE: tuple[int, int] = (128, 10240)

# Retention periods CloudWatch Logs accepts.
LOG_RETENTION_DAYS: frozenset[int] = frozenset(
    {1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731,
     1096, 1827, 2192, 2557, 2922, 3288, 3653}
)

# What Bucket.grantWrite hands out: object writes and deletes, no reads.
STORAGE_WRITE_ACTIONS: tuple[str, ...] = (
    "s3:Abort*",
    "s3:DeleteObject*",
    "s3:PutObject",
    "s3:PutObjectLegalHold",
    "s3:PutObjectRetention",
    "s3:PutObjectTagging",
    "s3:PutObjectVersionTagging",
)
LOG_APPEND_ACTIONS: tuple[str, ...] = (
    "logs:CreateLogGroup",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
)


@dataclass(frozen=True)
class CompositionSettings:
    """
    Knobs shared by every environment of a stack.

    Attributes:
        storage_prefix: Prefix (with role) of the bucket name.
        compute_prefix: Prefix (with role) of the function name.
        principal_prefix: Prefix (with role) of the IAM role name.
        api_url: External endpoint the function calls; exposed as API_URL.
        timeout_seconds: Function execution time ceiling.
        memory_mb: Function memory ceiling.
        log_retention_days: Log group retention.
        lifecycle: Teardown policy for the bucket and log group.
        payload: Executable artifact of the function.
    """

    storage_prefix: str = "api-responses-bucket"
    compute_prefix: str = "api-processor-lambda"
    principal_prefix: str = "api-processor-role"
    api_url: str = DEFAULT_API_URL
    timeout_seconds: int = 30
    memory_mb: int = 128
    log_retention_days: int = 7
    lifecycle: LifecyclePolicy = LifecyclePolicy.EPHEMERAL
    payload: Payload = field(default_factory=InlinePayload)


def _check_inputs(
    environment_key: str,
    account: AccountContext,
    settings: CompositionSettings,
) -> None:
    if not _helpers.is_valid_environment_key(environment_key):
        raise ConfigurationError(
            f"invalid environment key {environment_key!r}: expected letters, "
            "digits and hyphens, starting with a letter or digit"
        )
    if not _helpers.is_valid_account_id(account.account):
        raise ConfigurationError(
            f"account context needs a 12-digit account id, got {account.account!r}"
        )
    if not account.region:
        raise ConfigurationError("account context needs a region")
    low, high = TIMEOUT_RANGE
    if not low <= settings.timeout_seconds <= high:
        raise ConfigurationError(
            f"timeout_seconds must be within {low}-{high}, "
            f"got {settings.timeout_seconds}"
        )
    low, high = MEMORY_RANGE
    if not low <= settings.memory_mb <= high:
        raise ConfigurationError(
            f"memory_mb must be within {low}-{high}, got {settings.memory_mb}"
        )
    if settings.log_retention_days not in LOG_RETENTION_DAYS:
        raise ConfigurationError(
            f"log_retention_days must be one of {sorted(LOG_RETENTION_DAYS)}, "
            f"got {settings.log_retention_days}"
        )


def _check_length(kind: str, name: str, limit: int) -> None:
    if len(name) > limit:
        raise ConfigurationError(
            f"{kind} name {name!r} is {len(name)} characters, limit is {limit}"
        )


def compose(
    environment_key: str,
    account: AccountContext,
    settings: CompositionSettings | None = None,
) -> tuple[ResourceGraph, OutputSet]:
    """
    Build the graph of bucket, log group, role and function for one environment.

    Args:
        environment_key: Output of resolve_environment_key (PR id or "default").
        account: Account and region the environment is deployed into.
        settings: Shared knobs; defaults to CompositionSettings().

    Returns:
        The resource graph and the values to export from the stack.

    Raises:
        ConfigurationError: If the key or account context is invalid, a
            derived name is too long, or a function limit or the log
            retention is out of range.
    """
    settings = settings or CompositionSettings()
    _check_inputs(environment_key, account, settings)

    tags = _helpers.environment_tags(environment_key)
    partition = account.partition

    bucket_name = _helpers.resource_name(
        settings.storage_prefix, environment_key, account.account, lower=True
    )
    function_name = _helpers.resource_name(settings.compute_prefix, environment_key)
    role_name = _helpers.resource_name(settings.principal_prefix, environment_key)
    _check_length("bucket", bucket_name, MAX_BUCKET_NAME)
    _check_length("function", function_name, MAX_FUNCTION_NAME)
    _check_length("role", role_name, MAX_ROLE_NAME)

    storage = StorageResource(
        name=bucket_name,
        arn=_helpers.bucket_arn(bucket_name, partition),
        lifecycle=settings.lifecycle,
        tags=tags,
    )

    log_name = _helpers.log_group_name(function_name)
    log_destination = LogDestination(
        name=log_name,
        arn=_helpers.log_group_arn(log_name, account.region, account.account, partition),
        retention_days=settings.log_retention_days,
        lifecycle=settings.lifecycle,
        tags=tags,
    )

    principal = PermissionPrincipal(
        name=role_name,
        arn=_helpers.role_arn(role_name, account.account, partition),
        assumed_by="lambda.amazonaws.com",
        description=f"Role for Lambda function in PR {environment_key}",
        tags=tags,
    )
    principal = principal.with_grant(
        Grant(
            sid="WriteStorage",
            actions=STORAGE_WRITE_ACTIONS,
            resources=(storage.arn, f"{storage.arn}/*"),
            target=STORAGE,
        )
    ).with_grant(
        Grant(
            sid="AppendLogs",
            actions=LOG_APPEND_ACTIONS,
            resources=(log_destination.arn,),
            target=LOG_DESTINATION,
        )
    )

    compute = ComputeResource(
        name=function_name,
        arn=_helpers.function_arn(
            function_name, account.region, account.account, partition
        ),
        role=PRINCIPAL,
        log_destination=LOG_DESTINATION,
        environment={
            "S3_BUCKET_NAME": storage.name,
            "API_URL": settings.api_url,
        },
        timeout_seconds=settings.timeout_seconds,
        memory_mb=settings.memory_mb,
        payload=settings.payload,
        tags=tags,
    )

    edges = [
        Edge(PRINCIPAL, grant.target, EdgeKind.GRANTS_ACCESS_TO)
        for grant in sorted(principal.grants, key=lambda g: g.sid)
    ]
    edges += [
        Edge(COMPUTE, PRINCIPAL, EdgeKind.DEPENDS_ON),
        Edge(COMPUTE, LOG_DESTINATION, EdgeKind.DEPENDS_ON),
        Edge(COMPUTE, STORAGE, EdgeKind.DEPENDS_ON),
    ]

    graph = ResourceGraph(
        environment_key=environment_key,
        nodes={
            STORAGE: storage,
            LOG_DESTINATION: log_destination,
            PRINCIPAL: principal,
            COMPUTE: compute,
        },
        edges=tuple(edges),
    )
    outputs = OutputSet(
        bucket_name=storage.name,
        function_name=compute.name,
        function_arn=compute.arn,
    )
    logger.debug(
        "composed environment %s: %s", environment_key, sorted(graph.names())
    )
    return graph, outputs
