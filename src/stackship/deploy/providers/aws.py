"""boto3-backed providers for CloudFormation, S3 and Lambda."""

import mimetypes
from pathlib import Path
from typing import Any
from urllib.parse import quote

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from stackship.clients.aws import AWSClientFactory, error_code, handle_aws_error, paginate
from stackship.core.exceptions import AWSError
from stackship.core.logging import StructuredLogger
from stackship.deploy.models import CreateStackResult, ExportLookup, StackStatus
from stackship.deploy.providers.base import (
    FunctionInvoker,
    ObjectStore,
    ProviderSet,
    StackProvider,
)

logger = StructuredLogger(__name__)

STACK_CAPABILITIES = ["CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]


class CloudFormationStackProvider(StackProvider):
    """Stack provider backed by the CloudFormation API."""

    def __init__(self, client: Any):
        self._cfn = client

    def create_stack(self, name: str, stage: str, template_path: str | Path) -> CreateStackResult:
        try:
            template_body = Path(template_path).read_text()
        except OSError as e:
            logger.error("Cannot read create template", path=str(template_path), error=str(e))
            return CreateStackResult(accepted=False, error=str(e))

        try:
            self._cfn.create_stack(
                StackName=name,
                TemplateBody=template_body,
                Capabilities=STACK_CAPABILITIES,
                Tags=[{"Key": "stage", "Value": stage}],
            )
        except ClientError as e:
            if error_code(e) == "AlreadyExistsException":
                return CreateStackResult(accepted=True, already_exists=True)
            logger.error("Stack create rejected", stack=name, error=str(e))
            return CreateStackResult(accepted=False, error=str(e))
        except BotoCoreError as e:
            logger.error("Stack create failed", stack=name, error=str(e))
            return CreateStackResult(accepted=False, error=str(e))

        return CreateStackResult(accepted=True)

    def update_stack(self, name: str, template_url: str) -> bool:
        try:
            self._cfn.update_stack(
                StackName=name,
                TemplateURL=template_url,
                Capabilities=STACK_CAPABILITIES,
            )
        except ClientError as e:
            if "No updates are to be performed" in str(e):
                logger.info("Stack is already up to date", stack=name)
                return True
            logger.error("Stack update rejected", stack=name, error=str(e))
            return False
        except BotoCoreError as e:
            logger.error("Stack update failed", stack=name, error=str(e))
            return False
        return True

    def delete_stack(self, name: str) -> bool:
        try:
            self._cfn.delete_stack(StackName=name)
        except (ClientError, BotoCoreError) as e:
            logger.error("Stack delete rejected", stack=name, error=str(e))
            return False
        return True

    def get_status(self, name: str) -> StackStatus:
        try:
            return self._describe_status(name)
        except AWSError as e:
            if "does not exist" in e.message:
                return StackStatus.NOT_EXISTS
            raise

    @handle_aws_error
    def _describe_status(self, name: str) -> StackStatus:
        response = self._cfn.describe_stacks(StackName=name)
        stacks = response.get("Stacks", [])
        if not stacks:
            return StackStatus.NOT_EXISTS
        return StackStatus.from_cloudformation(stacks[0]["StackStatus"])

    @handle_aws_error
    def find_export(self, name: str) -> ExportLookup:
        for export in paginate(self._cfn, "list_exports", "Exports"):
            if export.get("Name") == name:
                return ExportLookup(found=True, value=export["Value"])
        return ExportLookup.missing()


class S3ObjectStore(ObjectStore):
    """Object store backed by S3."""

    def __init__(self, client: Any):
        self._s3 = client

    def put_file(self, bucket: str, local_path: str | Path, key: str) -> bool:
        extra_args: dict[str, Any] = {}
        content_type, _ = mimetypes.guess_type(str(local_path))
        if content_type:
            extra_args["ContentType"] = content_type

        try:
            self._s3.upload_file(str(local_path), bucket, key, ExtraArgs=extra_args or None)
        except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as e:
            logger.error("Upload failed", bucket=bucket, key=key, error=str(e))
            return False
        return True

    def put_content(self, bucket: str, content: bytes, key: str) -> bool:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": content}
        content_type, _ = mimetypes.guess_type(key)
        if content_type:
            kwargs["ContentType"] = content_type

        try:
            self._s3.put_object(**kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.error("Upload failed", bucket=bucket, key=key, error=str(e))
            return False
        return True

    def get_url(self, bucket: str, key: str) -> str:
        endpoint = self._s3.meta.endpoint_url.rstrip("/")
        return f"{endpoint}/{bucket}/{quote(key, safe='/')}"

    def empty_and_delete_bucket(self, bucket: str) -> bool:
        try:
            paginator = self._s3.get_paginator("list_object_versions")
            for page in paginator.paginate(Bucket=bucket):
                objects = [
                    {"Key": item["Key"], "VersionId": item["VersionId"]}
                    for item in page.get("Versions", []) + page.get("DeleteMarkers", [])
                ]
                # DeleteObjects takes at most 1000 keys, the page size
                if objects:
                    self._s3.delete_objects(
                        Bucket=bucket,
                        Delete={"Objects": objects, "Quiet": True},
                    )
            self._s3.delete_bucket(Bucket=bucket)
        except ClientError as e:
            if error_code(e) == "NoSuchBucket":
                logger.info("Bucket already gone", bucket=bucket)
                return True
            logger.error("Failed to empty bucket", bucket=bucket, error=str(e))
            return False
        except BotoCoreError as e:
            logger.error("Failed to empty bucket", bucket=bucket, error=str(e))
            return False
        return True


class LambdaFunctionInvoker(FunctionInvoker):
    """Asynchronous Lambda invocation."""

    def __init__(self, client: Any):
        self._lambda = client

    def invoke(self, name: str) -> bool:
        try:
            response = self._lambda.invoke(FunctionName=name, InvocationType="Event")
        except (ClientError, BotoCoreError) as e:
            logger.warning("Invocation failed", function=name, error=str(e))
            return False
        return response.get("StatusCode") == 202


def aws_providers(factory: AWSClientFactory) -> ProviderSet:
    """Build the boto3 providers for one region."""
    return ProviderSet(
        stacks=CloudFormationStackProvider(factory.cloudformation),
        store=S3ObjectStore(factory.s3),
        functions=LambdaFunctionInvoker(factory.lambda_),
    )
