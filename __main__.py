"""
PR preview environments - Pulumi entrypoint.

Builds one isolated AWS environment per pull request:

- **Selector**: the PR number comes from stack config (``prNumber``); without
  one the "default" environment is built.
- **Composer**: derives every resource name from the PR number and the
  caller's account, and grants the function write access to its own bucket
  and log group only.
- **PrEnvironment**: creates the bucket, log group, role and function.

Typical CI usage: ``pulumi up --stack pr-123 --config prNumber=123`` on open,
``pulumi destroy --stack pr-123`` on close.

Stack exports: environment_key, s3_bucket_name, lambda_function_arn,
lambda_function_name.
"""

import pulumi
import pulumi_aws as aws

from config import StackConfig, account_context
from pr_environment import (
    PrEnvironment,
    compose,
    resolve_environment_key,
)


def main():
    """
    Compose the environment for this stack's PR and export its outputs.

    Reads config, resolves the environment key, composes the resource graph
    against the caller's account and region, creates the resources, and
    exports the names and ARN other tooling (tests, CI) needs.
    """
    config = StackConfig.from_pulumi_config(pulumi.Config())
    environment_key = resolve_environment_key(config.context())

    graph, outputs = compose(
        environment_key,
        account_context(
            aws.get_caller_identity(), aws.get_region(), aws.get_partition()
        ),
        config.composition_settings(),
    )
    pulumi.log.info(
        f"Composing environment pr-{environment_key}: "
        f"{', '.join(sorted(graph.names()))}; function {outputs.function_arn}"
    )

    environment = PrEnvironment(name=f"pr-{environment_key}", graph=graph)

    pulumi.export("environment_key", environment_key)
    for output_name, value in [
        ("s3_bucket_name", environment.bucket_name),
        ("lambda_function_arn", environment.function_arn),
        ("lambda_function_name", environment.function_name),
    ]:
        pulumi.export(output_name, value)


if __name__ == "__main__":
    main()
