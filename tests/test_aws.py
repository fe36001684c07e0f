"""
Tests for the CloudFormation backend.
"""

import json

import pytest
from moraine import AccessMode, BackendError, Function, ServiceRole, Stack, User, table
from moraine.config import AwsConfig
from moraine.core.resource import ResourceKind
from moraine.providers import CloudFormationBackend
from moraine.providers.aws import (
    TABLE_READ_ACTIONS,
    TABLE_WRITE_ACTIONS,
    grant_actions,
)


@pytest.fixture
def config():
    return AwsConfig(
        account_id="123456789012",
        region="ap-northeast-1",
        tags={"managed_by": "moraine"},
    )


@pytest.fixture
def stack():
    stack = Stack(name="aws-test")
    users = stack.register_resource(
        table("UserTable", "name", sort_key="order", sort_type="Number", table_name="app_user")
    )
    tester = stack.register_principal(User("LocalTestUser", user_name="app-local-test"))
    stack.grant_read(tester, users)
    stack.grant_write(tester, users)
    role = stack.register_principal(ServiceRole("AppRole", trusted_service="lambda.amazonaws.com"))
    stack.attach_managed_policy(role, "service-role/AWSLambdaBasicExecutionRole")
    app = stack.register_resource(
        Function(
            "AppFunction",
            entry_point="dist/app.zip",
            architecture="arm64",
            timeout_seconds=30,
            role_id="AppRole",
            environment={"B": "2", "A": "1"},
        )
    )
    stack.grant_read(role, users)
    stack.bind_schedule("0 12 * * 1-5", "Asia/Tokyo", app)
    return stack


class TestGrantActions:

    def test_table_actions(self):
        assert grant_actions(ResourceKind.TABLE, AccessMode.READ) == TABLE_READ_ACTIONS
        assert grant_actions(ResourceKind.TABLE, AccessMode.WRITE) == TABLE_WRITE_ACTIONS
        assert "dynamodb:PutItem" not in TABLE_READ_ACTIONS
        assert "dynamodb:GetItem" not in TABLE_WRITE_ACTIONS

    def test_function_actions(self):
        assert grant_actions(ResourceKind.FUNCTION, AccessMode.WRITE) == ["lambda:InvokeFunction"]

    def test_schedule_not_grantable(self):
        with pytest.raises(ValueError):
            grant_actions(ResourceKind.SCHEDULE, AccessMode.READ)


class TestCloudFormationBackend:
    """Template rendering."""

    def test_table(self, stack, config):
        backend = CloudFormationBackend(config=config)
        stack.materialize(backend)

        resource = backend.resources["UserTable"]
        assert resource["Type"] == "AWS::DynamoDB::GlobalTable"
        props = resource["Properties"]
        assert props["TableName"] == "app_user"
        assert props["KeySchema"] == [
            {"AttributeName": "name", "KeyType": "HASH"},
            {"AttributeName": "order", "KeyType": "RANGE"},
        ]
        assert props["AttributeDefinitions"] == [
            {"AttributeName": "name", "AttributeType": "S"},
            {"AttributeName": "order", "AttributeType": "N"},
        ]
        assert props["Replicas"] == [{"Region": "ap-northeast-1"}]
        assert props["BillingMode"] == "PAY_PER_REQUEST"

    def test_function(self, stack, config):
        backend = CloudFormationBackend(config=config)
        stack.materialize(backend)

        resource = backend.resources["AppFunction"]
        props = resource["Properties"]
        assert resource["Type"] == "AWS::Lambda::Function"
        assert props["Architectures"] == ["arm64"]
        assert props["Timeout"] == 30
        assert props["Role"] == {"Fn::GetAtt": ["AppRole", "Arn"]}
        assert props["Code"] == {
            "S3Bucket": "moraine-assets-123456789012-ap-northeast-1",
            "S3Key": "dist/app.zip",
        }
        assert list(props["Environment"]["Variables"]) == ["A", "B"]
        assert props["Tags"] == [{"Key": "managed_by", "Value": "moraine"}]

    def test_function_without_role_gets_one(self):
        stack = Stack(name="s")
        stack.register_resource(Function("F1", entry_point="dist/f1.zip"))
        backend = CloudFormationBackend()

        stack.materialize(backend)

        role = backend.resources["F1ServiceRole"]
        assert role["Type"] == "AWS::IAM::Role"
        assert backend.resources["F1"]["Properties"]["Role"] == {"Fn::GetAtt": ["F1ServiceRole", "Arn"]}
        assert backend.resources["F1"]["Properties"]["Code"]["S3Bucket"] == {
            "Fn::Sub": "moraine-assets-${AWS::AccountId}-${AWS::Region}"
        }

    def test_principals(self, stack, config):
        backend = CloudFormationBackend(config=config)
        stack.materialize(backend)

        user = backend.resources["LocalTestUser"]
        assert user["Type"] == "AWS::IAM::User"
        assert user["Properties"]["UserName"] == "app-local-test"

        role = backend.resources["AppRole"]["Properties"]
        assert role["AssumeRolePolicyDocument"]["Statement"][0]["Principal"] == {
            "Service": "lambda.amazonaws.com"
        }
        assert role["ManagedPolicyArns"] == [{
            "Fn::Join": [
                "",
                ["arn:", {"Ref": "AWS::Partition"}, ":iam::aws:policy/",
                 "service-role/AWSLambdaBasicExecutionRole"],
            ]
        }]

    def test_grant_statements(self, stack, config):
        backend = CloudFormationBackend(config=config)
        stack.materialize(backend)

        policy = backend.resources["LocalTestUserDefaultPolicy"]
        assert policy["Type"] == "AWS::IAM::Policy"
        assert policy["Properties"]["Users"] == [{"Ref": "LocalTestUser"}]
        statements = policy["Properties"]["PolicyDocument"]["Statement"]
        assert [s["Action"] for s in statements] == [TABLE_READ_ACTIONS, TABLE_WRITE_ACTIONS]
        assert statements[0]["Resource"] == [
            {"Fn::GetAtt": ["UserTable", "Arn"]},
            {"Fn::Join": ["", [{"Fn::GetAtt": ["UserTable", "Arn"]}, "/index/*"]]},
        ]

        role_policy = backend.resources["AppRoleDefaultPolicy"]["Properties"]
        assert role_policy["Roles"] == [{"Ref": "AppRole"}]
        assert len(role_policy["PolicyDocument"]["Statement"]) == 1

    def test_policy_documents(self, stack):
        backend = CloudFormationBackend()
        stack.materialize(backend)

        documents = backend.policy_documents()

        assert set(documents) == {"LocalTestUser", "AppRole"}
        assert documents["AppRole"]["Statement"][0]["Action"] == TABLE_READ_ACTIONS

    def test_schedule(self, stack, config):
        backend = CloudFormationBackend(config=config)
        stack.materialize(backend)

        schedule = backend.resources["AppFunctionSchedule"]
        props = schedule["Properties"]
        assert schedule["Type"] == "AWS::Scheduler::Schedule"
        assert props["ScheduleExpression"] == "cron(0 12 ? * 2-6 *)"
        assert props["ScheduleExpressionTimezone"] == "Asia/Tokyo"
        assert props["Target"] == {
            "Arn": {"Fn::GetAtt": ["AppFunction", "Arn"]},
            "RoleArn": {"Fn::GetAtt": ["AppFunctionScheduleRole", "Arn"]},
        }
        invoke = backend.resources["AppFunctionScheduleRole"]["Properties"]["Policies"][0]
        assert invoke["PolicyDocument"]["Statement"][0]["Action"] == ["lambda:InvokeFunction"]

    def test_disabled_schedule(self):
        stack = Stack(name="s")
        f1 = stack.register_resource(Function("F1", entry_point="dist/f1.zip"))
        stack.bind_schedule("0 12 * * *", "UTC", f1, enabled=False)
        backend = CloudFormationBackend()

        stack.materialize(backend)

        assert backend.resources["F1Schedule"]["Properties"]["State"] == "DISABLED"

    def test_execution_role_id_taken_by_table(self):
        stack = Stack(name="s")
        stack.register_resource(Function("Notifier", entry_point="dist/n.zip"))
        stack.register_resource(table("NotifierServiceRole", "name"))
        backend = CloudFormationBackend()

        with pytest.raises(BackendError) as exc_info:
            stack.materialize(backend)

        assert exc_info.value.operation == "create_resource"
        assert exc_info.value.logical_id == "NotifierServiceRole"
        assert backend.resources["NotifierServiceRole"]["Type"] == "AWS::IAM::Role"

    def test_table_declared_before_execution_role_id(self):
        stack = Stack(name="s")
        stack.register_resource(table("NotifierServiceRole", "name"))
        stack.register_resource(Function("Notifier", entry_point="dist/n.zip"))
        backend = CloudFormationBackend()

        with pytest.raises(BackendError) as exc_info:
            stack.materialize(backend)

        assert exc_info.value.logical_id == "Notifier"
        assert backend.resources["NotifierServiceRole"]["Type"] == "AWS::DynamoDB::GlobalTable"

    def test_default_policy_id_taken_by_table(self):
        stack = Stack(name="s")
        u1 = stack.register_principal(User("U1"))
        policy_table = stack.register_resource(table("U1DefaultPolicy", "name"))
        stack.grant_read(u1, policy_table)
        backend = CloudFormationBackend()

        with pytest.raises(BackendError) as exc_info:
            stack.materialize(backend)

        assert exc_info.value.operation == "apply_grant"
        assert backend.resources["U1DefaultPolicy"]["Type"] == "AWS::DynamoDB::GlobalTable"

    def test_unrenderable_schedule_is_backend_error(self):
        stack = Stack(name="s")
        f1 = stack.register_resource(Function("F1", entry_point="dist/f1.zip"))
        stack.bind_schedule("0 0 1 * MON", "UTC", f1)

        with pytest.raises(BackendError) as exc_info:
            stack.materialize(CloudFormationBackend())

        assert exc_info.value.operation == "create_schedule"
        assert exc_info.value.logical_id == "F1Schedule"

    def test_rerun_produces_same_template(self, stack, config):
        backend = CloudFormationBackend(config=config)
        stack.materialize(backend)
        first = backend.to_json()

        stack.materialize(backend)

        assert backend.to_json() == first

    def test_template(self, stack):
        backend = CloudFormationBackend(description="test stack")
        stack.materialize(backend)

        template = json.loads(backend.to_json())

        assert template["AWSTemplateFormatVersion"] == "2010-09-09"
        assert template["Description"] == "test stack"
        assert "UserTable" in template["Resources"]
        assert backend.get_provider_type() == "aws"
