"""
JenkinsJob - triggers named jobs on an external Jenkins server.

Each target job compiles to one task that the execution engine hands to
Jenkins; the task carries no steps of its own.

Preset synchronizes user-declared parameters with what each target job
currently declares on the server. Lookups run concurrently, one thread per
target job. The first failure fails the whole preset; lookups already in
flight are left to finish and their results are discarded. The client is
closed once no lookup is running.
"""

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait

from jobsmith.clients.jenkins import JenkinsClient, JenkinsParameterDefinition
from jobsmith.errors import EmptyJobError, JobsmithError, UpstreamLookupError, ValidationError
from jobsmith.schemas import (
    JenkinsJobInfo,
    JenkinsJobParameter,
    JenkinsJobSpec,
    JenkinsTaskSpec,
    Job,
    JobKind,
    JobTask,
    ParamType,
    Repository,
    Workflow,
)

from .base import JobDeps, LookupResult, decode_spec, encode_spec
from .common import JOB_NAME_KEY, job_key

logger = logging.getLogger(__name__)


def _format_default(value) -> str:
    """Render a server default value as a parameter value string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def close_client(client: JenkinsClient) -> None:
    """Close client if it holds resources."""
    close = getattr(client, "close", None)
    if close is not None:
        close()


def close_when_done(client: JenkinsClient, futures: list[Future]) -> None:
    """
    Close client once every future has finished.

    Closes immediately when futures is empty or all are already done.
    """
    if not futures:
        close_client(client)
        return

    lock = threading.Lock()
    remaining = [len(futures)]

    def on_done(_future: Future) -> None:
        with lock:
            remaining[0] -= 1
            last = remaining[0] == 0
        if last:
            close_client(client)

    for future in futures:
        future.add_done_callback(on_done)


def reconcile_parameters(
    declared: list[JenkinsJobParameter],
    current: list[JenkinsParameterDefinition],
) -> list[JenkinsJobParameter]:
    """
    Rebuild a target job's parameter list from the server's declarations.

    The result follows the server's order and identity set. A parameter the
    user declared keeps its value and type; any other server parameter is
    synthesized from its default value and (mapped) type. User parameters
    the server no longer declares are dropped. When the server declares no
    parameters at all, the user's list is kept as is.
    """
    if not current:
        return list(declared)

    by_name = {parameter.name: parameter for parameter in declared}
    final: list[JenkinsJobParameter] = []
    for definition in current:
        if definition.name in by_name:
            final.append(by_name[definition.name])
            continue
        final.append(JenkinsJobParameter(
            name=definition.name,
            value=_format_default(definition.default_value),
            type=ParamType.from_jenkins(definition.type),
            choices=list(definition.choices),
        ))
    return final


class JenkinsJob:
    """Job variant for `jenkins` jobs."""

    kind = JobKind.JENKINS

    def __init__(self, job: Job, workflow: Workflow, deps: JobDeps):
        self.job = job
        self.workflow = workflow
        self.deps = deps

    def _decode(self) -> JenkinsJobSpec:
        return decode_spec(self.job, JenkinsJobSpec)

    def instantiate(self) -> None:
        encode_spec(self.job, self._decode())

    def set_preset(self) -> None:
        """
        Synchronize each target job's parameters with the Jenkins server.

        Raises:
            DecodeError: If the job payload is malformed
            UpstreamLookupError: If the integration is unknown or any lookup fails
        """
        spec = self._decode()
        try:
            integration = self.deps.store.find_jenkins_integration(spec.id)
        except JobsmithError as e:
            raise UpstreamLookupError(f"failed to get jenkins integration {spec.id}: {e}") from e

        if not spec.jobs:
            encode_spec(self.job, spec)
            return

        client = self.deps.jenkins_client(integration)
        results = self._fetch_parameters(client, spec.jobs)

        # Each target is written only after every lookup succeeded
        for target in spec.jobs:
            target.parameters = reconcile_parameters(target.parameters, results[target.job_name])
        encode_spec(self.job, spec)

    def _fetch_parameters(
        self,
        client: JenkinsClient,
        targets: list[JenkinsJobInfo],
    ) -> dict[str, list[JenkinsParameterDefinition]]:
        """
        Look up every target's current parameters concurrently.

        Returns as soon as all lookups succeed or the first one fails. The
        client is closed on return, or after the last in-flight lookup
        finishes when one fails.
        """
        executor = ThreadPoolExecutor(
            max_workers=len(targets),
            thread_name_prefix=f"jenkins-preset-{self.job.name}",
        )
        futures: dict[Future, str] = {}
        try:
            for target in targets:
                futures[executor.submit(client.get_job_parameters, target.job_name)] = target.job_name

            pending = set(futures)
            while pending:
                done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                for future in done:
                    error = future.exception()
                    if error is not None:
                        name = futures[future]
                        logger.warning(f"Jenkins preset for job {self.job.name}: lookup of {name} failed: {error}")
                        raise UpstreamLookupError(
                            f"preset jenkins job: get job {name} error: {error}"
                        ) from error
        except BaseException:
            close_when_done(client, list(futures))
            raise
        finally:
            # Lookups still running are not waited for; their results are dropped
            executor.shutdown(wait=False)

        close_client(client)
        return {name: future.result() for future, name in futures.items()}

    def merge_args(self, args: Job) -> None:
        """
        Merge a re-run override into this job.

        For each target job matched by name, parameter values from args
        replace the current values for matching parameter names. Targets and
        parameters only present in args are dropped.
        """
        if args.name != self.job.name or args.kind != self.job.kind:
            return

        spec = self._decode()
        args_spec = decode_spec(args, JenkinsJobSpec)
        overrides = {target.job_name: target for target in args_spec.jobs}

        for target in spec.jobs:
            override = overrides.get(target.job_name)
            if override is None:
                continue
            for parameter in target.parameters:
                override_parameter = override.get_parameter(parameter.name)
                if override_parameter is not None:
                    parameter.value = override_parameter.value
        encode_spec(self.job, spec)

    def merge_webhook_repo(self, repo: Repository) -> None:
        """Jenkins jobs carry no repositories; the payload is only re-encoded."""
        encode_spec(self.job, self._decode())

    def get_repos(self) -> LookupResult:
        self._decode()
        return LookupResult()

    def get_outputs(self) -> LookupResult:
        self._decode()
        return LookupResult()

    def to_jobs(self, task_id: int) -> list[JobTask]:
        """
        Compile one task per target job.

        Raises:
            DecodeError: If the job payload is malformed
            EmptyJobError: If no target job is declared
        """
        spec = self._decode()
        if not spec.jobs:
            raise EmptyJobError(f"jenkins job {self.job.name}: job list is empty")

        tasks = []
        for target in spec.jobs:
            tasks.append(JobTask(
                name=self.job.name,
                key=job_key(self.job.name, target.job_name),
                job_type=self.kind.value,
                job_info={
                    JOB_NAME_KEY: self.job.name,
                    "jenkins_job_name": target.job_name,
                },
                spec=JenkinsTaskSpec(
                    id=spec.id,
                    job=JenkinsJobInfo(
                        job_name=target.job_name,
                        parameters=list(target.parameters),
                    ),
                ),
                timeout=0,
            ))
        encode_spec(self.job, spec)
        return tasks

    def lint_job(self) -> None:
        """
        Check that the referenced Jenkins integration exists.

        Raises:
            DecodeError: If the job payload is malformed
            ValidationError: If the integration is not found
        """
        spec = self._decode()
        try:
            self.deps.store.find_jenkins_integration(spec.id)
        except JobsmithError as e:
            raise ValidationError(
                f"jenkins job {self.job.name}: integration {spec.id!r} not found: {e}",
                reference=spec.id,
            ) from e
