"""Deploy and destroy workflows."""

import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from stackship.config import DeployConfig
from stackship.core.exceptions import (
    StackDeleteFailed,
    StackOperationFailed,
    StackUpdateFailed,
)
from stackship.core.logging import StructuredLogger
from stackship.deploy.descriptor import DescriptorLoader
from stackship.deploy.exports import ExportResolver
from stackship.deploy.hooks import PostDeploymentHookRunner
from stackship.deploy.models import DeploymentDescriptor, DeploymentReport, StackStatus
from stackship.deploy.naming import export_name, stack_name, template_file_name
from stackship.deploy.providers.base import ProviderSet
from stackship.deploy.stack import PollPolicy, StackLifecycleController
from stackship.deploy.substitution import SubstitutionEngine
from stackship.deploy.uploads import ArtifactUploadCoordinator

logger = StructuredLogger(__name__)


class DeploymentOrchestrator:
    """Run the deploy and destroy workflows for one project stage.

    Every step gates the next. Fatal steps raise a ``DeploymentError``
    subclass naming the step and its target; best-effort steps (file uploads,
    after-deployment hooks) only add warnings to the report.
    """

    def __init__(
        self,
        providers: ProviderSet,
        config: DeployConfig | None = None,
        cancel: threading.Event | None = None,
        loader: DescriptorLoader | None = None,
    ):
        self._config = config or DeployConfig()
        self._providers = providers
        self._loader = loader or DescriptorLoader(self._config.descriptor_file)

        self.stack = StackLifecycleController(
            providers.stacks,
            policy=PollPolicy.from_config(self._config.poll),
            cancel=cancel,
        )
        self.exports = ExportResolver(providers.stacks)
        self.uploads = ArtifactUploadCoordinator(
            providers.store,
            substitution=SubstitutionEngine(),
            concurrency=self._config.upload_concurrency,
            lambda_key=self._config.lambda_key,
            template_key=self._config.template_key,
        )
        self.hooks = PostDeploymentHookRunner(providers.functions)

    @property
    def stage(self) -> str:
        return self._config.stage

    def load_descriptor(self) -> DeploymentDescriptor:
        return self._loader.load(self._config.compiled_source_path)

    def _template_path(self, prefix: str) -> Path:
        return Path(self._config.compiled_source_path) / template_file_name(prefix, self.stage)

    def _bucket_export(self, descriptor: DeploymentDescriptor) -> str:
        return export_name(descriptor.project_name, self.stage, self._config.bucket_export_suffix)

    def plan(self, descriptor: DeploymentDescriptor) -> dict[str, Any]:
        """Describe what a deploy would do without calling any provider."""
        if descriptor.assemble:
            artifacts = [
                str(Path(self._config.assembled_dir) / h.handler_file) for h in descriptor.handlers
            ]
        else:
            artifacts = [self._config.lambda_path]

        return {
            "stack": stack_name(descriptor.project_name, self.stage),
            "stage": self.stage,
            "bucket_export": self._bucket_export(descriptor),
            "create_template": str(self._template_path(self._config.create_template_prefix)),
            "update_template": str(self._template_path(self._config.update_template_prefix)),
            "artifacts": artifacts,
            "exports": [b.export_name for b in descriptor.exports_for(self.stage)],
            "file_uploads": sum(len(s) for s in descriptor.file_uploads_for(self.stage).values()),
            "hooks": descriptor.hooks_for(self.stage),
        }

    def deploy(self, descriptor: DeploymentDescriptor | None = None) -> DeploymentReport:
        """Create or update the stack and push everything that depends on it.

        Args:
            descriptor: Pre-loaded descriptor; read from the compiled source path if omitted

        Returns:
            Report of the successful run
        """
        descriptor = descriptor or self.load_descriptor()
        name = stack_name(descriptor.project_name, self.stage)
        report = DeploymentReport(stack_name=name, stage=self.stage, action="deploy")
        log = logger.bind(stack=name)

        log.info(f"Beginning deployment for project: {descriptor.project_name}, stage: {self.stage}")

        # 1. Make sure the stack exists
        created = self.stack.ensure_created(
            name,
            self.stage,
            self._template_path(self._config.create_template_prefix),
        )
        report.created = created.created
        if created.created:
            if created.status == StackStatus.FAILED:
                raise StackOperationFailed("Stack creation failed", target=name, step="create-stack")
            log.info("Stack created")
        else:
            log.info("Stack already exists, proceeding to update")

        # 2. Deployment bucket
        bucket = self.exports.require(
            self._bucket_export(descriptor),
            reason="Unable to find deployment bucket",
        )
        report.bucket = bucket

        # 3. + 4. Code and update template
        self.uploads.upload_code(
            bucket,
            descriptor,
            self._config.lambda_path,
            self._config.assembled_dir,
        )
        template_url = self.uploads.upload_template(
            bucket,
            self._template_path(self._config.update_template_prefix),
        )

        # 5. + 6. Update and wait
        if not self.stack.apply_update(name, template_url):
            raise StackUpdateFailed("Unable to update stack", target=name)

        status = self.stack.poll_until_terminal(name)
        report.final_status = status
        if status == StackStatus.FAILED:
            raise StackOperationFailed("Stack update failed", target=name, step="update-stack")
        log.info("Updated stack successfully")

        # 7. Optional outputs
        outputs = self.exports.resolve_bindings(descriptor.exports_for(self.stage))
        report.outputs = outputs.messages

        # 8. Post-deploy files
        file_uploads = descriptor.file_uploads_for(self.stage)
        if file_uploads:
            log.info("Starting file uploads")
            report.uploads = self.uploads.upload_files(file_uploads, outputs)
            for result in report.uploads:
                if not result.success:
                    report.warn(f"Upload of s3://{result.bucket}/{result.key} failed: {result.error}")

        # 9. After-deployment hooks
        hooks = descriptor.hooks_for(self.stage)
        if hooks:
            log.info("Starting after deployment functions")
            report.hooks = self.hooks.run(hooks)
            for hook in report.hooks:
                if not hook.success:
                    report.warn(f"After-deployment function {hook.function_name} failed: {hook.error}")

        # 10. Done
        report.success = True
        report.completed_at = datetime.now()
        log.info("Deployment completed")
        for message, value in report.outputs:
            log.info(f"{message}{value}")

        return report

    def destroy(self, descriptor: DeploymentDescriptor | None = None) -> DeploymentReport:
        """Empty the deployment bucket and delete the stack."""
        descriptor = descriptor or self.load_descriptor()
        name = stack_name(descriptor.project_name, self.stage)
        report = DeploymentReport(stack_name=name, stage=self.stage, action="destroy")
        log = logger.bind(stack=name)

        bucket = self.exports.require(
            self._bucket_export(descriptor),
            reason="Unable to find S3 bucket, does the stack exist?",
        )
        report.bucket = bucket

        log.info("Found S3 bucket, about to empty", bucket=bucket)
        if self._providers.store.empty_and_delete_bucket(bucket):
            log.info("Emptied S3 bucket", bucket=bucket)
        else:
            log.warning("Could not empty S3 bucket", bucket=bucket)
            report.warn(f"Bucket {bucket} could not be emptied")

        if not self.stack.delete_stack(name):
            raise StackDeleteFailed("Unable to delete stack", target=name)

        status = self.stack.poll_until_terminal(name, missing_is_deleted=True)
        report.final_status = status
        if status == StackStatus.FAILED:
            raise StackOperationFailed("Stack deletion failed", target=name, step="delete-stack")

        report.success = True
        report.completed_at = datetime.now()
        log.info("Deleted stack successfully")
        return report
