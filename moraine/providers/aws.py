"""
AWS provider: renders a graph as a CloudFormation template.

Mapping:
- Table        -> AWS::DynamoDB::GlobalTable (on-demand billing)
- Function     -> AWS::Lambda::Function
- User         -> AWS::IAM::User
- ServiceRole  -> AWS::IAM::Role
- Grant        -> statement in AWS::IAM::Policy "<Principal>DefaultPolicy"
- CronSchedule -> AWS::Scheduler::Schedule plus an invoke role
"""

import json
import logging
from typing import Any

from moraine.compute.resources import Function
from moraine.config.provider import AwsConfig
from moraine.core.grants import AccessMode
from moraine.core.resource import Resource, ResourceKind
from moraine.identity.principals import Principal, PrincipalKind, ServiceRole, User
from moraine.providers.base import Backend, ProviderRef
from moraine.scheduling.cron import parse_cron
from moraine.scheduling.resources import schedule_id_for
from moraine.storage.resources import AttributeType, Table

logger = logging.getLogger(__name__)

TABLE_READ_ACTIONS = [
    "dynamodb:BatchGetItem",
    "dynamodb:GetRecords",
    "dynamodb:GetShardIterator",
    "dynamodb:Query",
    "dynamodb:GetItem",
    "dynamodb:Scan",
    "dynamodb:ConditionCheckItem",
    "dynamodb:DescribeTable",
]

TABLE_WRITE_ACTIONS = [
    "dynamodb:BatchWriteItem",
    "dynamodb:PutItem",
    "dynamodb:UpdateItem",
    "dynamodb:DeleteItem",
    "dynamodb:DescribeTable",
]

FUNCTION_READ_ACTIONS = ["lambda:GetFunction", "lambda:GetFunctionConfiguration"]

FUNCTION_WRITE_ACTIONS = ["lambda:InvokeFunction"]

_ACTIONS = {
    (ResourceKind.TABLE, AccessMode.READ): TABLE_READ_ACTIONS,
    (ResourceKind.TABLE, AccessMode.WRITE): TABLE_WRITE_ACTIONS,
    (ResourceKind.FUNCTION, AccessMode.READ): FUNCTION_READ_ACTIONS,
    (ResourceKind.FUNCTION, AccessMode.WRITE): FUNCTION_WRITE_ACTIONS,
}

LAMBDA_BASIC_EXECUTION_POLICY = "service-role/AWSLambdaBasicExecutionRole"

_ATTRIBUTE_TYPES = {AttributeType.STRING: "S", AttributeType.NUMBER: "N"}


def grant_actions(kind: ResourceKind, mode: AccessMode) -> list[str]:
    """
    IAM actions a grant of `mode` on a resource of `kind` allows.

    Raises:
        ValueError: If the resource kind cannot be granted on
    """
    try:
        return list(_ACTIONS[(ResourceKind(kind), AccessMode(mode))])
    except KeyError:
        raise ValueError(f"Cannot grant {mode} access on a {kind}") from None


def _arn(logical_id: str) -> dict[str, Any]:
    return {"Fn::GetAtt": [logical_id, "Arn"]}


def _managed_policy_arn(policy_ref: str) -> Any:
    if policy_ref.startswith("arn:"):
        return policy_ref
    return {
        "Fn::Join": ["", ["arn:", {"Ref": "AWS::Partition"}, ":iam::aws:policy/", policy_ref]]
    }


def _assume_role_policy(service: str) -> dict[str, Any]:
    return {
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"Service": service},
            "Action": "sts:AssumeRole",
        }],
    }


class CloudFormationBackend(Backend):
    """
    Backend that accumulates a CloudFormation template.

    Nothing is deployed; the template is the output. Operations are keyed
    by logical id, so materializing the same graph twice produces the same
    template.

    Example:
        backend = CloudFormationBackend(
            config=AwsConfig(account_id="123456789012", region="ap-northeast-1")
        )
        stack.materialize(backend)
        print(backend.to_json())
    """

    def __init__(self, config: AwsConfig | None = None, description: str | None = None):
        """
        Initialize the backend.

        Args:
            config: Target account and region. Without one, the template
                uses CloudFormation pseudo parameters instead.
            description: Template description
        """
        self.config = config
        self.description = description
        self.resources: dict[str, dict[str, Any]] = {}
        self._kinds: dict[str, ResourceKind] = {}
        self._owners: dict[str, str] = {}
        self._statements: dict[str, list[dict[str, Any]]] = {}

    def _claim(self, owner: str, *logical_ids: str) -> None:
        """
        Reserve template logical ids for the graph entity `owner`.

        Ids the backend derives (execution roles, default policies, schedule
        roles) share one namespace with the graph's own ids.

        Raises:
            ValueError: If an id is already held by a different entity
        """
        for logical_id in logical_ids:
            current = self._owners.get(logical_id, owner)
            if current != owner:
                raise ValueError(
                    f"Logical id '{logical_id}' for '{owner}' is already used by "
                    f"'{current}' in the template"
                )
        for logical_id in logical_ids:
            self._owners[logical_id] = owner

    def _tags(self) -> list[dict[str, str]]:
        if self.config is None:
            return []
        return [{"Key": k, "Value": v} for k, v in sorted(self.config.tags.items())]

    def _with_tags(self, properties: dict[str, Any]) -> dict[str, Any]:
        tags = self._tags()
        if tags:
            properties["Tags"] = tags
        return properties

    def _asset_bucket(self) -> Any:
        if self.config is None:
            return {"Fn::Sub": "moraine-assets-${AWS::AccountId}-${AWS::Region}"}
        return self.config.asset_bucket_name()

    def _region(self) -> Any:
        if self.config is None:
            return {"Ref": "AWS::Region"}
        return self.config.region

    def create_resource(self, descriptor: Resource) -> ProviderRef:
        if isinstance(descriptor, Table):
            physical_id = self._table(descriptor)
        elif isinstance(descriptor, Function):
            physical_id = self._function(descriptor)
        else:
            raise ValueError(f"Unsupported resource {descriptor!r}")

        self._kinds[descriptor.logical_id] = descriptor.kind
        logger.debug("Rendered %r", descriptor)
        return ProviderRef(
            logical_id=descriptor.logical_id,
            physical_id=physical_id,
            kind=descriptor.kind.value,
        )

    def _table(self, table: Table) -> str:
        keys = table.key_attributes()
        properties: dict[str, Any] = {
            "AttributeDefinitions": [
                {"AttributeName": k.name, "AttributeType": _ATTRIBUTE_TYPES[k.type]}
                for k in keys
            ],
            "BillingMode": "PAY_PER_REQUEST",
            "KeySchema": [
                {"AttributeName": k.name, "KeyType": key_type}
                for k, key_type in zip(keys, ["HASH", "RANGE"])
            ],
            "Replicas": [{"Region": self._region()}],
        }
        if table.table_name:
            properties["TableName"] = table.table_name

        self._claim(table.logical_id, table.logical_id)
        self.resources[table.logical_id] = {
            "Type": "AWS::DynamoDB::GlobalTable",
            "Properties": properties,
            "UpdateReplacePolicy": "Retain",
            "DeletionPolicy": "Retain",
        }
        return table.table_name or table.logical_id

    def _function(self, function: Function) -> str:
        self._claim(function.logical_id, function.logical_id)
        role_id = function.role_id
        if role_id is None:
            # No declared role: give the function its own basic execution role
            role_id = f"{function.logical_id}ServiceRole"
            self._claim(function.logical_id, role_id)
            self.resources[role_id] = {
                "Type": "AWS::IAM::Role",
                "Properties": self._with_tags({
                    "AssumeRolePolicyDocument": _assume_role_policy("lambda.amazonaws.com"),
                    "ManagedPolicyArns": [_managed_policy_arn(LAMBDA_BASIC_EXECUTION_POLICY)],
                }),
            }

        properties: dict[str, Any] = {
            "Architectures": [function.architecture.value],
            "Code": {"S3Bucket": self._asset_bucket(), "S3Key": function.entry_point},
            "Handler": function.handler,
            "MemorySize": function.memory_mb,
            "Role": _arn(role_id),
            "Runtime": function.runtime,
            "Timeout": function.timeout_seconds,
        }
        if function.function_name:
            properties["FunctionName"] = function.function_name
        if function.environment:
            properties["Environment"] = {"Variables": dict(sorted(function.environment.items()))}

        self.resources[function.logical_id] = {
            "Type": "AWS::Lambda::Function",
            "Properties": self._with_tags(properties),
            "DependsOn": [role_id],
            "Metadata": {"aws:asset:path": function.entry_point},
        }
        return function.function_name or function.logical_id

    def create_principal(self, descriptor: Principal) -> ProviderRef:
        if not isinstance(descriptor, (User, ServiceRole)):
            raise ValueError(f"Unsupported principal {descriptor!r}")
        self._claim(descriptor.logical_id, descriptor.logical_id)

        if isinstance(descriptor, User):
            properties: dict[str, Any] = {}
            if descriptor.user_name:
                properties["UserName"] = descriptor.user_name
            self.resources[descriptor.logical_id] = {
                "Type": "AWS::IAM::User",
                "Properties": self._with_tags(properties),
            }
            physical_id = descriptor.user_name or descriptor.logical_id
        elif isinstance(descriptor, ServiceRole):
            properties = {
                "AssumeRolePolicyDocument": _assume_role_policy(descriptor.trusted_service),
            }
            if descriptor.managed_policies:
                properties["ManagedPolicyArns"] = [
                    _managed_policy_arn(p) for p in descriptor.managed_policies
                ]
            if descriptor.role_name:
                properties["RoleName"] = descriptor.role_name
            self.resources[descriptor.logical_id] = {
                "Type": "AWS::IAM::Role",
                "Properties": self._with_tags(properties),
            }
            physical_id = descriptor.role_name or descriptor.logical_id

        logger.debug("Rendered %r", descriptor)
        return ProviderRef(
            logical_id=descriptor.logical_id,
            physical_id=physical_id,
            kind=descriptor.kind.value,
        )

    def apply_grant(self, principal: ProviderRef, resource: ProviderRef, mode: AccessMode) -> None:
        kind = self._kinds.get(resource.logical_id)
        if kind is None:
            raise ValueError(f"Resource '{resource.logical_id}' has not been created")

        targets: list[Any] = [_arn(resource.logical_id)]
        if kind is ResourceKind.TABLE:
            targets.append({"Fn::Join": ["", [_arn(resource.logical_id), "/index/*"]]})

        statement = {
            "Effect": "Allow",
            "Action": grant_actions(kind, mode),
            "Resource": targets,
        }
        policy_id = f"{principal.logical_id}DefaultPolicy"
        self._claim(principal.logical_id, policy_id)

        statements = self._statements.setdefault(principal.logical_id, [])
        if statement in statements:
            return
        statements.append(statement)

        attachment = "Users" if principal.kind == PrincipalKind.USER.value else "Roles"
        self.resources[policy_id] = {
            "Type": "AWS::IAM::Policy",
            "Properties": {
                "PolicyDocument": {"Version": "2012-10-17", "Statement": statements},
                "PolicyName": policy_id,
                attachment: [{"Ref": principal.logical_id}],
            },
        }

    def create_schedule(
        self, cron_expression: str, timezone: str, target: ProviderRef, enabled: bool = True
    ) -> None:
        expression = parse_cron(cron_expression).to_aws()
        schedule_id = schedule_id_for(target.logical_id)
        role_id = f"{schedule_id}Role"
        self._claim(schedule_id, schedule_id, role_id)

        self.resources[role_id] = {
            "Type": "AWS::IAM::Role",
            "Properties": self._with_tags({
                "AssumeRolePolicyDocument": _assume_role_policy("scheduler.amazonaws.com"),
                "Policies": [{
                    "PolicyName": "InvokeTarget",
                    "PolicyDocument": {
                        "Version": "2012-10-17",
                        "Statement": [{
                            "Effect": "Allow",
                            "Action": FUNCTION_WRITE_ACTIONS,
                            "Resource": [_arn(target.logical_id)],
                        }],
                    },
                }],
            }),
        }
        self.resources[schedule_id] = {
            "Type": "AWS::Scheduler::Schedule",
            "Properties": {
                "FlexibleTimeWindow": {"Mode": "OFF"},
                "ScheduleExpression": expression,
                "ScheduleExpressionTimezone": timezone,
                "State": "ENABLED" if enabled else "DISABLED",
                "Target": {"Arn": _arn(target.logical_id), "RoleArn": _arn(role_id)},
            },
        }

    def policy_documents(self) -> dict[str, dict[str, Any]]:
        """Permission statements per principal, as IAM policy documents."""
        return {
            principal_id: {"Version": "2012-10-17", "Statement": list(statements)}
            for principal_id, statements in self._statements.items()
        }

    def template(self) -> dict[str, Any]:
        """The accumulated CloudFormation template."""
        template: dict[str, Any] = {"AWSTemplateFormatVersion": "2010-09-09"}
        if self.description:
            template["Description"] = self.description
        template["Resources"] = self.resources
        return template

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.template(), indent=indent)

    def get_provider_type(self) -> str:
        return "aws"
