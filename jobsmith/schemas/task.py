"""
Task Graph schema - the compiled output handed to the execution engine.

A TaskGraph is an ordered tuple of JobTasks. Freestyle tasks carry their own
ordered StepTasks; tasks delegated to an external system (Jenkins) carry no
steps. The execution engine must preserve step order within one task and
may schedule tasks however it likes.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Union

from .common import KeyVal, Output, ToolInstall
from .job_spec import JenkinsJobInfo
from .kinds import StepKind
from .repository import Repository
from .store import RegistryNamespace


@dataclass(frozen=True)
class ToolInstallStepSpec:
    """Spec of a `tools` step."""
    installs: tuple[ToolInstall, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"installs": [t.to_dict() for t in self.installs]}


@dataclass(frozen=True)
class GitStepSpec:
    """Spec of a `git` step."""
    repos: tuple[Repository, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"repos": [r.to_dict() for r in self.repos]}


@dataclass(frozen=True)
class ShellStepSpec:
    """Spec of a `shell` step. One script line per element."""
    scripts: tuple[str, ...] = ()
    skip_prepare: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"scripts": list(self.scripts), "skip_prepare": self.skip_prepare}


@dataclass(frozen=True)
class SonarCheckStepSpec:
    """Spec of a `sonar_check` (quality gate) step."""
    parameter: str
    check_dir: str
    sonar_token: str
    sonar_server: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "parameter": self.parameter,
            "check_dir": self.check_dir,
            "sonar_token": self.sonar_token,
            "sonar_server": self.sonar_server,
        }


StepSpec = Union[ToolInstallStepSpec, GitStepSpec, ShellStepSpec, SonarCheckStepSpec]


@dataclass(frozen=True)
class StepTask:
    """
    One ordered action within a task.

    Attributes:
        name: Step name, unique within the task
        job_name: Name of the owning task
        step_type: Kind of step
        spec: Kind-specific spec (None for debug hooks)
    """
    name: str
    job_name: str
    step_type: StepKind
    spec: Optional[StepSpec] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "job_name": self.job_name,
            "step_type": self.step_type.value,
            "spec": self.spec.to_dict() if self.spec is not None else None,
        }


@dataclass(frozen=True)
class StorageDetail:
    """A shared volume mounted into a task."""
    name: str
    sub_path: str
    mount_path: str
    type: str = "nfs"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "sub_path": self.sub_path,
            "mount_path": self.mount_path,
        }


@dataclass(frozen=True)
class JobProperties:
    """
    Execution environment and scheduling metadata of a freestyle task.

    Environment entries are kept in accumulation order. A key may appear
    more than once; lookups resolve to the last entry.
    """
    timeout: int = 0
    resource_request: str = ""
    res_req_spec: dict[str, Any] = field(default_factory=dict)
    cluster_id: str = ""
    strategy_id: str = ""
    build_os: str = ""
    image_from: str = "custom"
    envs: tuple[KeyVal, ...] = ()
    registries: tuple[RegistryNamespace, ...] = ()
    share_storage_details: tuple[StorageDetail, ...] = ()

    def get_env(self, key: str) -> Optional[KeyVal]:
        """Get the effective (last written) entry for key."""
        for env in reversed(self.envs):
            if env.key == key:
                return env
        return None

    def env_map(self) -> dict[str, str]:
        """Effective environment as a plain mapping."""
        return {env.key: env.value for env in self.envs}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "timeout": self.timeout,
            "resource_request": self.resource_request,
            "res_req_spec": self.res_req_spec,
            "cluster_id": self.cluster_id,
            "strategy_id": self.strategy_id,
            "build_os": self.build_os,
            "image_from": self.image_from,
            "envs": [e.to_dict() for e in self.envs],
            "registries": [r.to_dict() for r in self.registries],
            "share_storage_details": [s.to_dict() for s in self.share_storage_details],
        }


@dataclass(frozen=True)
class FreestyleTaskSpec:
    """Spec of a task that runs its own steps."""
    properties: JobProperties
    steps: tuple[StepTask, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "properties": self.properties.to_dict(),
            "steps": [s.to_dict() for s in self.steps],
        }


@dataclass(frozen=True)
class JenkinsTaskSpec:
    """Spec of a task delegated to a Jenkins server."""
    id: str
    job: JenkinsJobInfo

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "job": self.job.to_dict()}


@dataclass(frozen=True)
class JobTask:
    """
    One compiled, independently schedulable task.

    Attributes:
        name: Task name
        key: Composite key `<job>.<sub-target>`, unique within a run
        job_type: Kind of the job that produced this task
        job_info: Correlation metadata for progress lookups
        spec: Kind-specific execution spec
        timeout: Timeout in minutes (0 = engine default)
        outputs: Declared outputs
    """
    name: str
    key: str
    job_type: str
    job_info: dict[str, str]
    spec: Union[FreestyleTaskSpec, JenkinsTaskSpec]
    timeout: int = 0
    outputs: tuple[Output, ...] = ()

    @property
    def steps(self) -> tuple[StepTask, ...]:
        """Steps of a freestyle task (empty for delegated tasks)."""
        if isinstance(self.spec, FreestyleTaskSpec):
            return self.spec.steps
        return ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for the execution engine."""
        return {
            "name": self.name,
            "key": self.key,
            "job_type": self.job_type,
            "job_info": dict(self.job_info),
            "spec": self.spec.to_dict(),
            "timeout": self.timeout,
            "outputs": [o.to_dict() for o in self.outputs],
        }


@dataclass(frozen=True)
class TaskGraph:
    """
    The compiled execution plan of one workflow run.

    Tasks appear in job declaration order, and in sub-target order within
    a job.
    """
    workflow_name: str
    task_id: int
    tasks: tuple[JobTask, ...] = ()

    def __iter__(self) -> Iterator[JobTask]:
        return iter(self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)

    @property
    def keys(self) -> tuple[str, ...]:
        """Composite keys of all tasks, in order."""
        return tuple(t.key for t in self.tasks)

    def get_task(self, key: str) -> Optional[JobTask]:
        """Get a task by composite key."""
        for task in self.tasks:
            if task.key == key:
                return task
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON/YAML output."""
        return {
            "workflow_name": self.workflow_name,
            "task_id": self.task_id,
            "tasks": [t.to_dict() for t in self.tasks],
        }
