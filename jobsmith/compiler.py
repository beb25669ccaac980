"""
Compiler - Transform a Workflow and its Jobs into a TaskGraph.

The compiler drives each job's variant in declaration order:
- instantiate the variant selected by the job's kind
- run to_jobs and append the resulting tasks

Compilation is sequential (later jobs may reference outputs of earlier
ones) and all-or-nothing: the first failing job aborts the whole
compilation and no partial TaskGraph is returned.

The workflow-wide helpers (preset, merge_args, merge_webhook_repo, lint,
outputs, repos) drive the matching lifecycle operation on every job.
Mutating helpers restore every job's spec if any job fails.
"""

import copy
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from jobsmith.errors import CompileError
from jobsmith.jobs import JobDeps, JobVariantRegistry, LookupResult
from jobsmith.schemas import Job, JobTask, Repository, TaskGraph, Workflow

logger = logging.getLogger(__name__)


@contextmanager
def _restore_on_error(jobs: Sequence[Job]) -> Iterator[None]:
    """Snapshot job specs and put them back if the block raises."""
    snapshot = [copy.deepcopy(job.spec) for job in jobs]
    try:
        yield
    except Exception:
        for job, spec in zip(jobs, snapshot):
            job.spec = spec
        raise


class Compiler:
    """
    Compiler for transforming a Workflow into a TaskGraph.

    Usage:
        deps = JobDeps(store=load_store("store.yaml"), config=load_config())
        compiler = Compiler(deps)
        graph = compiler.compile(workflow, task_id=42)
    """

    def __init__(self, deps: JobDeps, registry: Optional[JobVariantRegistry] = None):
        """
        Initialize the compiler.

        Args:
            deps: Collaborators handed to every job variant
            registry: Variant registry (defaults to the built-in variants)
        """
        self._deps = deps
        self._registry = registry or JobVariantRegistry.create_default()

    def _jobs(self, workflow: Workflow, jobs: Optional[Sequence[Job]]) -> Sequence[Job]:
        return workflow.jobs if jobs is None else jobs

    def compile(
        self,
        workflow: Workflow,
        jobs: Optional[Sequence[Job]] = None,
        task_id: int = 0,
    ) -> TaskGraph:
        """
        Compile jobs into a TaskGraph.

        Args:
            workflow: The workflow run context
            jobs: Jobs to compile, in order (defaults to workflow.jobs)
            task_id: Identifier of this run

        Returns:
            The compiled TaskGraph

        Raises:
            DecodeError: If a job's kind is unknown or its spec is malformed
            EmptyJobError: If a job declares no sub-targets
            CompileError: If a job cannot be compiled or task keys collide
        """
        jobs = self._jobs(workflow, jobs)
        tasks: list[JobTask] = []
        keys: set[str] = set()

        with _restore_on_error(jobs):
            for job in jobs:
                variant = self._registry.instantiate(job, workflow, self._deps)
                try:
                    job_tasks = variant.to_jobs(task_id)
                except Exception as e:
                    logger.error(f"Compiling job {job.name} of workflow {workflow.name} failed: {e}")
                    raise

                for task in job_tasks:
                    if task.key in keys:
                        raise CompileError(
                            f"duplicate task key {task.key!r} in workflow {workflow.name}"
                        )
                    keys.add(task.key)
                tasks.extend(job_tasks)
                logger.debug(f"Job {job.name} compiled to {len(job_tasks)} task(s)")

        logger.info(f"Compiled workflow {workflow.name} run {task_id}: {len(tasks)} task(s)")
        return TaskGraph(workflow_name=workflow.name, task_id=task_id, tasks=tuple(tasks))

    def preset(self, workflow: Workflow, jobs: Optional[Sequence[Job]] = None) -> None:
        """Run set_preset on every job."""
        jobs = self._jobs(workflow, jobs)
        with _restore_on_error(jobs):
            for job in jobs:
                self._registry.instantiate(job, workflow, self._deps).set_preset()

    def merge_args(
        self,
        workflow: Workflow,
        args: Sequence[Job],
        jobs: Optional[Sequence[Job]] = None,
    ) -> None:
        """
        Merge user-submitted job overrides into the matching jobs.

        Each job is merged with the override of the same name; jobs without
        an override are left alone.
        """
        jobs = self._jobs(workflow, jobs)
        overrides = {arg.name: arg for arg in args}
        with _restore_on_error(jobs):
            for job in jobs:
                override = overrides.get(job.name)
                if override is None:
                    continue
                self._registry.instantiate(job, workflow, self._deps).merge_args(override)

    def merge_webhook_repo(
        self,
        workflow: Workflow,
        repo: Repository,
        jobs: Optional[Sequence[Job]] = None,
    ) -> None:
        """Merge an event-supplied repository into every job."""
        jobs = self._jobs(workflow, jobs)
        with _restore_on_error(jobs):
            for job in jobs:
                self._registry.instantiate(job, workflow, self._deps).merge_webhook_repo(repo)

    def lint(self, workflow: Workflow, jobs: Optional[Sequence[Job]] = None) -> None:
        """
        Lint every job; the first unresolved reference raises.

        Raises:
            DecodeError: If a job's kind is unknown or its spec is malformed
            ValidationError: On the first unresolved reference
        """
        for job in self._jobs(workflow, jobs):
            variant = self._registry.create(job, workflow, self._deps)
            variant.lint_job()

    def outputs(self, workflow: Workflow, jobs: Optional[Sequence[Job]] = None) -> LookupResult:
        """Output references of every job, in declaration order."""
        result = LookupResult()
        for job in self._jobs(workflow, jobs):
            variant = self._registry.create(job, workflow, self._deps)
            result.extend(variant.get_outputs())
        return result

    def repos(self, workflow: Workflow, jobs: Optional[Sequence[Job]] = None) -> LookupResult:
        """Repositories of every job, in declaration order."""
        result = LookupResult()
        for job in self._jobs(workflow, jobs):
            variant = self._registry.create(job, workflow, self._deps)
            result.extend(variant.get_repos())
        return result


def compile_workflow(
    workflow: Workflow,
    deps: JobDeps,
    jobs: Optional[Sequence[Job]] = None,
    task_id: int = 0,
) -> TaskGraph:
    """
    Convenience function to compile a workflow with the built-in variants.

    Args:
        workflow: The workflow run context
        deps: Collaborators handed to every job variant
        jobs: Jobs to compile (defaults to workflow.jobs)
        task_id: Identifier of this run

    Returns:
        The compiled TaskGraph
    """
    return Compiler(deps).compile(workflow, jobs=jobs, task_id=task_id)
