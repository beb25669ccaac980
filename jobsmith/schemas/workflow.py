"""
Workflow and Job schemas - the compilation inputs.

A Workflow is the parent pipeline definition and run context. It is passed
into compilation by reference and never mutated by the core.

A Job is one declared unit of work inside a workflow. Its `spec` is an opaque
payload (a mapping, or a YAML document string) that each job variant decodes
into its own typed form at the start of every lifecycle operation and writes
back at the end.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ShareStorage:
    """A shared volume declared by a workflow (or requested by a job)."""
    name: str
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"name": self.name, "path": self.path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShareStorage":
        """Deserialize from dictionary."""
        return cls(name=data["name"], path=data.get("path", ""))


@dataclass
class ShareStorageInfo:
    """Share storages a sub-target wants mounted."""
    enabled: bool = False
    share_storages: list[ShareStorage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "enabled": self.enabled,
            "share_storages": [s.to_dict() for s in self.share_storages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShareStorageInfo":
        """Deserialize from dictionary."""
        return cls(
            enabled=bool(data.get("enabled", False)),
            share_storages=[
                ShareStorage.from_dict(s) for s in data.get("share_storages") or []
            ],
        )


@dataclass
class Job:
    """
    A declared job inside a workflow.

    Attributes:
        name: Unique name within the workflow
        kind: Kind discriminator (a JobKind value)
        spec: Opaque kind-specific payload
    """
    name: str
    kind: str
    spec: Any = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"name": self.name, "type": self.kind, "spec": self.spec}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Job":
        """Deserialize from dictionary (accepts `type` or `kind`)."""
        return cls(
            name=data["name"],
            kind=data.get("type", data.get("kind", "")),
            spec=data.get("spec") or {},
        )


@dataclass(frozen=True)
class Workflow:
    """
    The parent pipeline definition and run context.

    Attributes:
        project: Project the workflow belongs to
        name: Workflow identifier
        display_name: Human-readable name
        share_storages: Shared volumes available to jobs
        jobs: Declared jobs, in declaration order
    """
    project: str
    name: str
    display_name: str = ""
    share_storages: tuple[ShareStorage, ...] = field(default_factory=tuple)
    jobs: tuple[Job, ...] = field(default_factory=tuple)

    def get_job(self, name: str) -> Optional[Job]:
        """Get a job by name."""
        for job in self.jobs:
            if job.name == name:
                return job
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "project": self.project,
            "name": self.name,
            "display_name": self.display_name,
            "share_storages": [s.to_dict() for s in self.share_storages],
            "jobs": [j.to_dict() for j in self.jobs],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Workflow":
        """Deserialize from dictionary."""
        return cls(
            project=data["project"],
            name=data["name"],
            display_name=data.get("display_name", ""),
            share_storages=tuple(
                ShareStorage.from_dict(s) for s in data.get("share_storages") or []
            ),
            jobs=tuple(Job.from_dict(j) for j in data.get("jobs") or []),
        )
