"""
Deployment configuration.

These classes provide type-safe configuration for stacks and the AWS
backend. They can be built in code, loaded from a YAML file, or read
from the environment.
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class AwsConfig(BaseModel):
    """
    AWS account and region a stack deploys to.

    Example:
        aws_config = AwsConfig(
            account_id="123456789012",
            region="ap-northeast-1",
            tags={"managed_by": "moraine"},
        )

        backend = CloudFormationBackend(config=aws_config)
    """

    account_id: str = Field(..., pattern=r"^\d{12}$", description="AWS account ID")
    region: str = Field(default="us-east-1", description="AWS region")
    tags: dict[str, str] = Field(
        default_factory=dict, description="Default tags for all resources"
    )
    asset_bucket: str | None = Field(
        default=None, description="Bucket holding function code artifacts"
    )

    class Config:
        extra = "forbid"

    def asset_bucket_name(self) -> str:
        return self.asset_bucket or f"moraine-assets-{self.account_id}-{self.region}"

    @classmethod
    def from_env(cls, **overrides) -> "AwsConfig":
        """
        Create a config from environment variables.

        Reads the account from CDK_DEFAULT_ACCOUNT or AWS_ACCOUNT_ID and the
        region from AWS_REGION, AWS_DEFAULT_REGION or CDK_DEFAULT_REGION.
        Keyword arguments take precedence.
        """
        values: dict = {}
        account = os.getenv("CDK_DEFAULT_ACCOUNT") or os.getenv("AWS_ACCOUNT_ID")
        region = (
            os.getenv("AWS_REGION")
            or os.getenv("AWS_DEFAULT_REGION")
            or os.getenv("CDK_DEFAULT_REGION")
        )
        if account:
            values["account_id"] = account
        if region:
            values["region"] = region
        values.update(overrides)
        return cls(**values)


class StackConfig(BaseModel):
    """
    Configuration for one deployable stack.

    Example YAML:
        name: SpotifyPlaylistNotificationStack
        description: Playlist notification bot
        aws:
          account_id: "123456789012"
          region: ap-northeast-1
    """

    name: str = Field(..., min_length=1, description="Stack name")
    description: str | None = Field(default=None, description="Stack description")
    aws: AwsConfig | None = Field(default=None, description="AWS target")

    class Config:
        extra = "forbid"


def load_config(path: str | Path) -> StackConfig:
    """
    Load a stack configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the content is invalid
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return StackConfig.model_validate(data)
