"""
AWS PR environment: S3 bucket + CloudWatch log group + IAM role + Lambda.

This component realizes a ResourceGraph built by ``composer.compose``. It makes
no naming or permission decisions of its own: every physical name, grant and
limit comes from the graph. The bucket is encrypted with S3-managed keys and
never public. Under the ephemeral lifecycle the bucket is emptied and deleted
with the stack; under the retain lifecycle Pulumi leaves the bucket and log
group in place on destroy.

Outputs (``bucket_name``, ``function_name``, ``function_arn``) are
``Output[str]`` read from the created resources, so they resolve to the
provider's values after deployment.
"""

import pulumi
import pulumi_aws as aws

from pr_environment.graph import LifecyclePolicy, ResourceGraph

ID: str = "prenv:aws:PrEnvironment"

S3_BLOCK_PUBLIC_ACCESS: dict[str, bool] = {
    "block_public_acls": True,
    "block_public_policy": True,
    "ignore_public_acls": True,
    "restrict_public_buckets": True,
}


def lifecycle_options(
    lifecycle: LifecyclePolicy,
    parent: pulumi.Resource,
) -> pulumi.ResourceOptions:
    """
    Resource options for a node with the given teardown policy.

    Retained resources are dropped from state on destroy, not deleted.
    """
    return pulumi.ResourceOptions(
        parent=parent,
        retain_on_delete=lifecycle is LifecyclePolicy.RETAIN,
    )


class PrEnvironment(pulumi.ComponentResource):
    """
    All resources of one PR environment, parented to one component.

    Resources: Bucket, BucketServerSideEncryptionConfiguration,
    BucketPublicAccessBlock, LogGroup, Role, RolePolicy, Function.
    """

    def __init__(
        self,
        name: str,
        graph: ResourceGraph,
        opts: pulumi.ResourceOptions | None = None,
    ):
        """
        Create the environment's resources from graph.

        Args:
            name: Pulumi resource name; prefixes child resource names.
            graph: Output of compose for this environment.
            opts: Options for the component itself.

        Outputs (set on self, registered for the component):
            bucket_name: S3 bucket name (exposed to the function as S3_BUCKET_NAME).
            function_name: Lambda function name.
            function_arn: Lambda function ARN for invocation.
        """
        super().__init__(ID, name, None, opts)

        storage = graph.storage
        log_destination = graph.log_destination
        principal = graph.principal
        compute = graph.compute

        child_opts = pulumi.ResourceOptions(parent=self)
        if storage.lifecycle is LifecyclePolicy.RETAIN:
            pulumi.log.warn(
                f"{storage.name} uses the retain policy and will survive pulumi destroy",
                resource=self,
            )

        # force_destroy empties the bucket so teardown can delete it.
        self.bucket = aws.s3.Bucket(
            resource_name=f"{name}-bucket",
            bucket=storage.name,
            force_destroy=storage.auto_delete_objects,
            tags=dict(storage.tags),
            opts=lifecycle_options(storage.lifecycle, self),
        )

        if storage.encrypted:
            by_default = aws.s3.BucketServerSideEncryptionConfigurationRuleApplyServerSideEncryptionByDefaultArgs(
                sse_algorithm="AES256",
            )
            aws.s3.BucketServerSideEncryptionConfiguration(
                resource_name=f"{name}-bucket-sse",
                bucket=self.bucket.id,
                rules=[
                    aws.s3.BucketServerSideEncryptionConfigurationRuleArgs(
                        apply_server_side_encryption_by_default=by_default,
                    )
                ],
                opts=child_opts,
            )

        aws.s3.BucketPublicAccessBlock(
            resource_name=f"{name}-bucket-block-public",
            bucket=self.bucket.id,
            opts=child_opts,
            **S3_BLOCK_PUBLIC_ACCESS,
        )

        log_group = aws.cloudwatch.LogGroup(
            resource_name=f"{name}-logs",
            name=log_destination.name,
            retention_in_days=log_destination.retention_days,
            tags=dict(log_destination.tags),
            opts=lifecycle_options(log_destination.lifecycle, self),
        )

        role = aws.iam.Role(
            resource_name=f"{name}-role",
            name=principal.name,
            description=principal.description,
            assume_role_policy=principal.assume_role_policy(),
            tags=dict(principal.tags),
            opts=child_opts,
        )

        # Inline policy: the grants live and die with the role.
        role_policy = aws.iam.RolePolicy(
            resource_name=f"{name}-role-policy",
            role=role.id,
            policy=principal.policy_document(),
            opts=child_opts,
        )

        # The log group must exist first or Lambda creates an unmanaged one
        # with infinite retention on the first invocation.
        function_opts = pulumi.ResourceOptions(
            parent=self,
            depends_on=[log_group, role_policy, self.bucket],
        )
        self.function = aws.lambda_.Function(
            resource_name=f"{name}-function",
            name=compute.name,
            role=role.arn,
            runtime=compute.payload.runtime,
            handler=compute.payload.handler,
            code=compute.payload.archive(),
            timeout=compute.timeout_seconds,
            memory_size=compute.memory_mb,
            environment=aws.lambda_.FunctionEnvironmentArgs(
                variables=dict(compute.environment),
            ),
            logging_config=aws.lambda_.FunctionLoggingConfigArgs(
                log_format="Text",
                log_group=log_group.name,
            ),
            tags=dict(compute.tags),
            opts=function_opts,
        )

        self.bucket_name: pulumi.Output[str] = self.bucket.bucket
        self.function_name: pulumi.Output[str] = self.function.name
        self.function_arn: pulumi.Output[str] = self.function.arn
        self.register_outputs(
            {
                "bucket_name": self.bucket_name,
                "function_name": self.function_name,
                "function_arn": self.function_arn,
            }
        )
