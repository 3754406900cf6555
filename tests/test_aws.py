"""Tests for the PrEnvironment component against Pulumi mocks"""

from unittest import mock

import pulumi

from pr_environment.aws import PrEnvironment, lifecycle_options
from pr_environment.composer import CompositionSettings, compose
from pr_environment.graph import AccountContext, LifecyclePolicy

ACCOUNT = AccountContext(account="111111111111", region="us-east-1")


def _prop(inputs: dict, *names: str):
    """First present property among names (engine names are camelCase)."""
    for name in names:
        if name in inputs:
            return inputs[name]
    return None


class EnvironmentMocks(pulumi.runtime.Mocks):
    """Echoes inputs back as state and records every registered resource."""

    def __init__(self):
        self.resources: dict[str, tuple[str, dict]] = {}

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        if args.typ == "aws:lambda/function:Function":
            outputs["arn"] = (
                f"arn:aws:lambda:us-east-1:111111111111:function:{args.inputs['name']}"
            )
        elif args.typ == "aws:iam/role:Role":
            outputs["arn"] = f"arn:aws:iam::111111111111:role/{args.inputs['name']}"
        self.resources[args.name] = (args.typ, dict(args.inputs))
        return [f"{args.name}_id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        return {}


mocks = EnvironmentMocks()
pulumi.runtime.set_mocks(mocks, preview=False)


@pulumi.runtime.test
def test_outputs_match_composed_names():
    graph, outputs = compose("123", ACCOUNT)
    environment = PrEnvironment("pr-123", graph)

    def check(args):
        bucket_name, function_name, function_arn = args
        assert bucket_name == outputs.bucket_name
        assert function_name == outputs.function_name
        assert function_arn == outputs.function_arn

    return pulumi.Output.all(
        environment.bucket_name,
        environment.function_name,
        environment.function_arn,
    ).apply(check)


@pulumi.runtime.test
def test_ephemeral_bucket_and_log_group():
    graph, _ = compose("200", ACCOUNT)
    environment = PrEnvironment("pr-200", graph)

    def check(_):
        bucket_type, bucket = mocks.resources["pr-200-bucket"]
        assert bucket_type == "aws:s3/bucket:Bucket"
        assert _prop(bucket, "forceDestroy", "force_destroy") is True

        log_type, log_group = mocks.resources["pr-200-logs"]
        assert log_type == "aws:cloudwatch/logGroup:LogGroup"
        assert log_group["name"] == "/aws/lambda/api-processor-lambda-pr-200"
        assert _prop(log_group, "retentionInDays", "retention_in_days") == 7

    return environment.function_arn.apply(check)


@pulumi.runtime.test
def test_role_policy_is_the_composed_document():
    graph, _ = compose("300", ACCOUNT)
    environment = PrEnvironment("pr-300", graph)

    def check(_):
        policy_type, policy = mocks.resources["pr-300-role-policy"]
        assert policy_type == "aws:iam/rolePolicy:RolePolicy"
        assert policy["policy"] == graph.principal.policy_document()

        role_type, role = mocks.resources["pr-300-role"]
        assert role_type == "aws:iam/role:Role"
        assert role["name"] == "api-processor-role-pr-300"

    return environment.function_arn.apply(check)


@pulumi.runtime.test
def test_retain_policy_keeps_bucket_contents():
    settings = CompositionSettings(lifecycle=LifecyclePolicy.RETAIN)
    graph, _ = compose("400", ACCOUNT, settings)
    environment = PrEnvironment("pr-400", graph)

    def check(_):
        _, bucket = mocks.resources["pr-400-bucket"]
        assert not _prop(bucket, "forceDestroy", "force_destroy")

    return environment.function_arn.apply(check)


class TestLifecycleOptions:
    def test_ephemeral_is_deleted_on_destroy(self):
        opts = lifecycle_options(LifecyclePolicy.EPHEMERAL, None)
        assert opts.retain_on_delete is False

    def test_retain_is_kept_on_destroy(self):
        opts = lifecycle_options(LifecyclePolicy.RETAIN, None)
        assert opts.retain_on_delete is True


def _build_recording_policies(key: str, lifecycle: LifecyclePolicy):
    """Build an environment and return the policies given to lifecycle_options."""
    settings = CompositionSettings(lifecycle=lifecycle)
    graph, _ = compose(key, ACCOUNT, settings)
    with mock.patch(
        "pr_environment.aws.lifecycle_options", wraps=lifecycle_options
    ) as recorded:
        environment = PrEnvironment(f"pr-{key}", graph)
    policies = [call.args[0] for call in recorded.call_args_list]
    return environment, policies


@pulumi.runtime.test
def test_retain_applies_to_bucket_and_log_group():
    environment, policies = _build_recording_policies("500", LifecyclePolicy.RETAIN)
    assert policies == [LifecyclePolicy.RETAIN, LifecyclePolicy.RETAIN]
    return environment.function_arn


@pulumi.runtime.test
def test_ephemeral_applies_to_bucket_and_log_group():
    environment, policies = _build_recording_policies("600", LifecyclePolicy.EPHEMERAL)
    assert policies == [LifecyclePolicy.EPHEMERAL, LifecyclePolicy.EPHEMERAL]
    return environment.function_arn
