"""
Job variant registry - selects the variant implementation for a job kind.

The registry maps kind discriminators to variant classes, giving the compiler
and the workflow service one dispatch point. Kinds beyond the built-in
`jenkins` and `zadig-scanning` register their own variant with the same
seven-operation contract.

Usage:
    registry = JobVariantRegistry.create_default()
    variant = registry.instantiate(job, workflow, deps)
    tasks = variant.to_jobs(task_id)
"""

from typing import Callable

from jobsmith.errors import DecodeError
from jobsmith.schemas import Job, JobKind, Workflow

from .base import JobDeps, JobVariant

VariantFactory = Callable[[Job, Workflow, JobDeps], JobVariant]


class JobVariantRegistry:
    """Registry of job variants by kind."""

    def __init__(self) -> None:
        """Initialize an empty variant registry."""
        self._variants: dict[str, VariantFactory] = {}

    def register(self, kind: str, factory: VariantFactory) -> None:
        """
        Register a variant for a job kind.

        Args:
            kind: Kind discriminator (JobKind value or a custom string)
            factory: Variant class or callable building one
        """
        self._variants[str(getattr(kind, "value", kind))] = factory

    def has(self, kind: str) -> bool:
        """Check if a variant is registered for a kind."""
        return str(getattr(kind, "value", kind)) in self._variants

    def list_kinds(self) -> list[str]:
        """List all registered kinds."""
        return list(self._variants.keys())

    def create(self, job: Job, workflow: Workflow, deps: JobDeps) -> JobVariant:
        """
        Build the variant for job without decoding its payload.

        Raises:
            DecodeError: If no variant is registered for the job's kind
        """
        factory = self._variants.get(str(getattr(job.kind, "value", job.kind)))
        if factory is None:
            raise DecodeError(
                f"job {job.name}: unknown job kind {job.kind!r}. "
                f"Registered: {self.list_kinds()}"
            )
        return factory(job, workflow, deps)

    def instantiate(self, job: Job, workflow: Workflow, deps: JobDeps) -> JobVariant:
        """
        Build the variant for job and run its instantiate step.

        Raises:
            DecodeError: If the kind is unknown or the payload is malformed
        """
        variant = self.create(job, workflow, deps)
        variant.instantiate()
        return variant

    @classmethod
    def create_default(cls) -> "JobVariantRegistry":
        """Create a registry with the built-in variants."""
        from .jenkins import JenkinsJob
        from .scanning import ScanningJob

        registry = cls()
        registry.register(JobKind.JENKINS.value, JenkinsJob)
        registry.register(JobKind.ZADIG_SCANNING.value, ScanningJob)
        return registry
