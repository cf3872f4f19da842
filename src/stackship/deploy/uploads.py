"""Artifact, template and file uploads to the object store."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from stackship.core.async_utils import map_blocking, run_sync
from stackship.core.exceptions import ArtifactUploadFailed, StackshipError
from stackship.core.logging import StructuredLogger
from stackship.deploy.models import (
    DeploymentDescriptor,
    FileUploadSpec,
    ResolvedOutputs,
    UploadResult,
)
from stackship.deploy.providers.base import ObjectStore
from stackship.deploy.substitution import SubstitutionEngine, Transform

logger = StructuredLogger(__name__)

DEFAULT_LAMBDA_KEY = "lambdacode"
DEFAULT_TEMPLATE_KEY = "update-template"


@dataclass(frozen=True)
class _UploadJob:
    bucket: str
    local_path: Path
    key: str
    transform: Transform | None


class ArtifactUploadCoordinator:
    """Push deployables and post-deploy files to their buckets."""

    def __init__(
        self,
        store: ObjectStore,
        substitution: SubstitutionEngine | None = None,
        concurrency: int = 1,
        lambda_key: str = DEFAULT_LAMBDA_KEY,
        template_key: str = DEFAULT_TEMPLATE_KEY,
    ):
        self._store = store
        self._substitution = substitution or SubstitutionEngine()
        self._concurrency = max(1, concurrency)
        self._lambda_key = lambda_key
        self._template_key = template_key

    def upload_artifact(self, bucket: str, local_path: str | Path, target_key: str) -> bool:
        """Upload a file unchanged."""
        logger.debug("Uploading", bucket=bucket, key=target_key, path=str(local_path))
        return self._store.put_file(bucket, local_path, target_key)

    def upload_with_transform(
        self,
        bucket: str,
        local_path: str | Path,
        target_key: str,
        transform: Transform,
    ) -> bool:
        """Upload a file after passing its content through ``transform``."""
        try:
            content = Path(local_path).read_bytes()
        except OSError as e:
            logger.error("Cannot read file", path=str(local_path), error=str(e))
            return False
        logger.debug("Uploading", bucket=bucket, key=target_key, path=str(local_path))
        return self._store.put_content(bucket, transform(content), target_key)

    def upload_code(
        self,
        bucket: str,
        descriptor: DeploymentDescriptor,
        lambda_path: str | Path,
        assembled_dir: str | Path,
    ) -> list[str]:
        """Upload the code artifact(s) for the descriptor's mode.

        Single-artifact mode uploads ``lambda_path`` only. Assembled mode
        uploads every handler from ``assembled_dir`` in declared order and
        stops at the first failure.

        Returns:
            Object keys written

        Raises:
            ArtifactUploadFailed: On the first failed upload
        """
        if not descriptor.assemble:
            logger.info("Uploading lambda file")
            if not self.upload_artifact(bucket, lambda_path, self._lambda_key):
                raise ArtifactUploadFailed(
                    "Failed uploading lambda code",
                    target=str(lambda_path),
                )
            return [self._lambda_key]

        keys: list[str] = []
        total = len(descriptor.handlers)
        for index, handler in enumerate(descriptor.handlers, start=1):
            logger.info(f"Uploading lambda handler {index}/{total}", handler=handler.handler_file)
            path = Path(assembled_dir) / handler.handler_file
            if not self.upload_artifact(bucket, path, handler.handler_file):
                raise ArtifactUploadFailed(
                    "Failed uploading lambda code, have the handlers been assembled?",
                    target=str(path),
                    details={"handler": f"{index}/{total}"},
                )
            keys.append(handler.handler_file)
        return keys

    def upload_template(self, bucket: str, template_path: str | Path) -> str:
        """Upload the stack update template and return its URL.

        Raises:
            ArtifactUploadFailed: If the upload failed
        """
        logger.info("Uploading cloudformation file")
        if not self.upload_artifact(bucket, template_path, self._template_key):
            raise ArtifactUploadFailed(
                "Failed uploading cloudformation update template",
                target=str(template_path),
            )
        return self._store.get_url(bucket, self._template_key)

    def upload_files(
        self,
        file_uploads: Mapping[str, Sequence[FileUploadSpec]],
        outputs: ResolvedOutputs,
    ) -> list[UploadResult]:
        """Best-effort upload of post-deploy files.

        Each spec is independent: failures are reported in the results and
        never stop sibling uploads. A missing source or an empty directory
        is reported as a failed result. Results follow declaration order.
        """
        planned: list[_UploadJob | UploadResult] = []

        for bucket, specs in file_uploads.items():
            for spec in specs:
                try:
                    planned.extend(self._expand(bucket, spec, outputs))
                except OSError as e:
                    logger.warning("Cannot read upload source", path=spec.local_file, error=str(e))
                    planned.append(
                        UploadResult(bucket=bucket, key=spec.target_file, success=False, error=str(e))
                    )

        jobs = [entry for entry in planned if isinstance(entry, _UploadJob)]
        completed = iter(run_sync(map_blocking(self._run_job, jobs, self._concurrency)) if jobs else [])
        results = [next(completed) if isinstance(entry, _UploadJob) else entry for entry in planned]

        for result in results:
            if not result.success:
                logger.warning("File upload failed", bucket=result.bucket, key=result.key)
        return results

    def _expand(
        self,
        bucket: str,
        spec: FileUploadSpec,
        outputs: ResolvedOutputs,
    ) -> list[_UploadJob]:
        transform = (
            self._substitution.transform_for(outputs.substitutions, True)
            if spec.substitute_variables
            else None
        )
        source = Path(spec.local_file)

        if source.is_dir():
            prefix = spec.target_file.strip("/")
            jobs = []
            for path in sorted(p for p in source.rglob("*") if p.is_file()):
                relative = path.relative_to(source).as_posix()
                key = f"{prefix}/{relative}" if prefix else relative
                jobs.append(_UploadJob(bucket, path, key, transform))
            if not jobs:
                raise FileNotFoundError(f"No files to upload under {source}")
            return jobs

        if not source.exists():
            raise FileNotFoundError(f"No such file or directory: {source}")

        key = spec.target_file or source.name
        return [_UploadJob(bucket, source, key, transform)]

    def _run_job(self, job: _UploadJob) -> UploadResult:
        try:
            if job.transform is None:
                success = self.upload_artifact(job.bucket, job.local_path, job.key)
            else:
                success = self.upload_with_transform(
                    job.bucket, job.local_path, job.key, job.transform
                )
        except (StackshipError, OSError) as e:
            return UploadResult(bucket=job.bucket, key=job.key, success=False, error=str(e))
        return UploadResult(
            bucket=job.bucket,
            key=job.key,
            success=success,
            error=None if success else f"upload of {job.local_path} failed",
        )
