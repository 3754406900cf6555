"""
Pure helpers for environment selection, naming and ARNs. Testable without
Pulumi runtime.

Used by the composer (resource_name, bucket_arn, log_group_arn, ...) and the
program entrypoint (resolve_environment_key). No Pulumi types; all functions
accept and return plain Python types so they can be unit-tested without a
Pulumi stack.
"""

import re
from typing import Any, Mapping

DEFAULT_ENVIRONMENT_KEY: str = "default"

# Context keys that may carry the PR identifier, in lookup order.
PR_CONTEXT_KEYS: tuple[str, ...] = ("prNumber", "pr_number")

_KEY_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9-]*")
_ACCOUNT_PATTERN = re.compile(r"[0-9]{12}")


def resolve_environment_key(
    context: Mapping[str, Any],
) -> str:
    """
    Return the environment key for a context: the PR identifier or "default".

    The first non-blank value among PR_CONTEXT_KEYS wins. Never fails; a
    missing, None or blank identifier falls back to DEFAULT_ENVIRONMENT_KEY.
    """
    for key in PR_CONTEXT_KEYS:
        value = context.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return DEFAULT_ENVIRONMENT_KEY


def is_valid_environment_key(
    key: str,
) -> bool:
    """Whether key can be embedded verbatim in every derived resource name."""
    return bool(key) and _KEY_PATTERN.fullmatch(key) is not None


def is_valid_account_id(
    account: str,
) -> bool:
    return bool(account) and _ACCOUNT_PATTERN.fullmatch(account) is not None


def resource_name(
    prefix: str,
    environment_key: str,
    scope_token: str | None = None,
    lower: bool = False,
) -> str:
    """
    Build a name like 'api-processor-lambda-pr-123'.

    Args:
        prefix: Fixed prefix including the role (e.g. "api-responses-bucket").
        environment_key: Environment key, embedded verbatim.
        scope_token: Optional account-scope suffix for globally unique names.
        lower: Lower-case the result (S3 bucket names are case-insensitive).

    Returns:
        "<prefix>-pr-<environment_key>[-<scope_token>]".
    """
    name = f"{prefix}-pr-{environment_key}"
    if scope_token:
        name = f"{name}-{scope_token}"
    return name.lower() if lower else name


def log_group_name(
    function_name: str,
) -> str:
    """Lambda's default log group for function_name."""
    return f"/aws/lambda/{function_name}"


def bucket_arn(
    bucket_name: str,
    partition: str = "aws",
) -> str:
    # S3 ARNs carry neither region nor account.
    return f"arn:{partition}:s3:::{bucket_name}"


def log_group_arn(
    name: str,
    region: str,
    account: str,
    partition: str = "aws",
) -> str:
    """
    Return the log group ARN with the ':*' stream suffix.

    IAM statements for CreateLogStream/PutLogEvents need the suffix to match
    streams inside the group.
    """
    return f"arn:{partition}:logs:{region}:{account}:log-group:{name}:*"


def role_arn(
    name: str,
    account: str,
    partition: str = "aws",
) -> str:
    return f"arn:{partition}:iam::{account}:role/{name}"


def function_arn(
    name: str,
    region: str,
    account: str,
    partition: str = "aws",
) -> str:
    return f"arn:{partition}:lambda:{region}:{account}:function:{name}"


def environment_tags(
    environment_key: str,
) -> dict[str, str]:
    """Tags applied to every resource of one environment."""
    return {
        "Environment": f"pr-{environment_key}",
        "PrNumber": environment_key,
        "ManagedBy": "pulumi",
    }
