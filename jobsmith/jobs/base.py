"""
Job Lifecycle Contract - the interface every job variant implements.

A job variant owns one Job of one kind. It is constructed with the Job, its
Workflow and a JobDeps bundle, and exposes seven operations, called in this
order by the workflow service and the compiler:

1. instantiate()          decode the payload; DecodeError if malformed
2. set_preset()           fill defaults from the store / live external systems
3. merge_args(args)       merge a user override (no-op on name/kind mismatch)
4. merge_webhook_repo(r)  merge one event repository into every sub-target
5. get_repos() /          pure projections; missing stored definitions are
   get_outputs()          skipped and reported in LookupResult.warnings
6. to_jobs(task_id)       compile sub-targets into JobTasks
7. lint_job()             validate references without mutating anything

Every operation decodes Job.spec afresh, works on that copy, and writes the
re-encoded payload back to Job.spec only when it succeeds.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, TypeVar, runtime_checkable

import yaml

from jobsmith.clients.jenkins import JenkinsClient, JenkinsClientFactory, make_jenkins_client
from jobsmith.clients.sonar import DashboardSonarAccessor, SonarAccessor
from jobsmith.config import JobsmithConfig
from jobsmith.errors import DecodeError
from jobsmith.schemas import Job, JenkinsIntegration, JobTask, Repository, Workflow
from jobsmith.store import SpecStore

logger = logging.getLogger(__name__)

SpecT = TypeVar("SpecT")


@dataclass
class JobDeps:
    """
    Collaborators a job variant needs.

    Attributes:
        store: Spec store for definitions, images, registries, integrations
        jenkins_client_factory: Builds a JenkinsClient for an integration;
            defaults to an httpx client using config.http_timeout_s
        sonar: Resolves sonar dashboard links
        config: Compilation settings
    """
    store: SpecStore
    jenkins_client_factory: Optional[JenkinsClientFactory] = None
    sonar: SonarAccessor = field(default_factory=DashboardSonarAccessor)
    config: JobsmithConfig = field(default_factory=JobsmithConfig)

    def jenkins_client(self, integration: JenkinsIntegration) -> JenkinsClient:
        """Get a Jenkins client for the integration."""
        if self.jenkins_client_factory is not None:
            return self.jenkins_client_factory(integration)
        return make_jenkins_client(integration, timeout=self.config.http_timeout_s)


@dataclass
class LookupResult:
    """
    Result of a tolerant projection (get_repos, get_outputs).

    Attributes:
        values: Values found, in sub-target order
        warnings: One message per skipped sub-target
    """
    values: list[Any] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def extend(self, other: "LookupResult") -> None:
        """Append another result's values and warnings."""
        self.values.extend(other.values)
        self.warnings.extend(other.warnings)


@runtime_checkable
class JobVariant(Protocol):
    """Protocol implemented by every job kind."""

    job: Job
    workflow: Workflow

    def instantiate(self) -> None:
        ...

    def set_preset(self) -> None:
        ...

    def merge_args(self, args: Job) -> None:
        ...

    def merge_webhook_repo(self, repo: Repository) -> None:
        ...

    def get_repos(self) -> LookupResult:
        ...

    def get_outputs(self) -> LookupResult:
        ...

    def to_jobs(self, task_id: int) -> list[JobTask]:
        ...

    def lint_job(self) -> None:
        ...


def load_payload(job: Job) -> dict[str, Any]:
    """
    Normalize a job's opaque spec payload to a mapping.

    Accepts a mapping, a YAML document string, an object with to_dict(),
    or None (an empty spec).

    Raises:
        DecodeError: If the payload is not a mapping or cannot be parsed
    """
    payload = job.spec
    if payload is None:
        return {}
    if hasattr(payload, "to_dict"):
        payload = payload.to_dict()
    if isinstance(payload, str):
        try:
            payload = yaml.safe_load(payload)
        except yaml.YAMLError as e:
            raise DecodeError(f"job {job.name}: spec is not valid YAML: {e}") from e
        if payload is None:
            return {}
    if not isinstance(payload, dict):
        raise DecodeError(
            f"job {job.name}: spec must be a mapping, got {type(payload).__name__}"
        )
    return payload


def decode_spec(job: Job, spec_cls: type[SpecT]) -> SpecT:
    """
    Decode a job's payload into spec_cls.

    Returns a fresh object on every call; mutating it does not touch
    the job until encode_spec is called.

    Raises:
        DecodeError: If the payload is structurally invalid
    """
    payload = load_payload(job)
    try:
        return spec_cls.from_dict(payload)  # type: ignore[attr-defined]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"job {job.name}: invalid {job.kind} spec: {e!r}") from e


def encode_spec(job: Job, spec: Any) -> None:
    """Write spec back into the job as a plain mapping."""
    job.spec = spec.to_dict()
