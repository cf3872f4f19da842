"""AWS client factory using boto3."""

from functools import wraps
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from stackship.config import AWSConfig
from stackship.core.exceptions import AWSError, AuthenticationError
from stackship.core.logging import StructuredLogger

logger = StructuredLogger(__name__)


class AWSClientFactory:
    """Factory for creating boto3 clients with consistent configuration."""

    def __init__(self, config: AWSConfig, region: str | None = None):
        self._config = config
        self._region_override = region
        self._session: boto3.Session | None = None

    @property
    def session(self) -> boto3.Session:
        """Get or create boto3 session."""
        if self._session is None:
            profile = self._config.get_profile()
            region = self._region_override or self._config.get_region()

            session_kwargs: dict[str, Any] = {}
            if profile:
                session_kwargs["profile_name"] = profile
            if region:
                session_kwargs["region_name"] = region

            # Use explicit credentials if provided
            if self._config.access_key_id and self._config.secret_access_key:
                session_kwargs["aws_access_key_id"] = self._config.access_key_id
                session_kwargs["aws_secret_access_key"] = self._config.secret_access_key
                if self._config.session_token:
                    session_kwargs["aws_session_token"] = self._config.session_token

            try:
                self._session = boto3.Session(**session_kwargs)
                logger.debug(
                    "Created AWS session",
                    profile=profile,
                    region=region,
                )
            except BotoCoreError as e:
                raise AuthenticationError(f"Failed to create AWS session: {e}")

        return self._session

    @property
    def region(self) -> str:
        """Get the configured region."""
        return self.session.region_name or "eu-west-1"

    def client(self, service_name: str, **kwargs: Any) -> Any:
        """Create a boto3 client for a service.

        Args:
            service_name: AWS service name (e.g., 's3', 'cloudformation')
            **kwargs: Additional client configuration

        Returns:
            boto3 client instance
        """
        config = BotoConfig(
            retries={"max_attempts": 3, "mode": "adaptive"},
            connect_timeout=10,
            read_timeout=60,
        )

        client_kwargs: dict[str, Any] = {"config": config, "region_name": self.region, **kwargs}

        endpoint_url = self._config.get_endpoint_url()
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url

        try:
            return self.session.client(service_name, **client_kwargs)
        except BotoCoreError as e:
            raise AWSError(
                f"Failed to create {service_name} client: {e}",
                service=service_name,
            )

    @property
    def cloudformation(self) -> Any:
        """Get CloudFormation client."""
        return self.client("cloudformation")

    @property
    def s3(self) -> Any:
        """Get S3 client."""
        return self.client("s3")

    @property
    def lambda_(self) -> Any:
        """Get Lambda client."""
        return self.client("lambda")


def error_code(error: ClientError) -> str:
    """Extract the AWS error code from a ClientError."""
    return error.response.get("Error", {}).get("Code", "Unknown")


def handle_aws_error(func: Any) -> Any:
    """Decorator to handle AWS errors consistently."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ClientError as e:
            error_message = e.response.get("Error", {}).get("Message", str(e))
            raise AWSError(
                f"{error_code(e)}: {error_message}",
                operation=getattr(e, "operation_name", None),
                details={"code": error_code(e)},
            )
        except BotoCoreError as e:
            raise AWSError(str(e))

    return wrapper


def paginate(client: Any, method: str, key: str, **kwargs: Any) -> list[Any]:
    """Helper to paginate through AWS API results.

    Args:
        client: boto3 client
        method: Method name to call
        key: Key in response containing items
        **kwargs: Arguments to pass to the method

    Returns:
        List of all items across all pages
    """
    paginator = client.get_paginator(method)
    items = []

    for page in paginator.paginate(**kwargs):
        items.extend(page.get(key, []))

    return items
