"""
Repository schema - a source-control checkout instruction.

Repositories reach a job from three sources: stored scanning definitions,
user-submitted overrides and webhook events. They are merged by identity
key (see jobsmith.repos) and never mutated in place across sources.
"""

from dataclasses import dataclass, field, fields
from typing import Any

# Fields that pin which revision gets checked out. An override that sets any
# of them replaces all of them.
REVISION_FIELDS = ("branch", "tag", "commit_id", "pr", "prs")


@dataclass
class Repository:
    """
    A source repository reference.

    Attributes:
        source: Code host type (gitlab, github, gerrit, ...)
        codehost_id: Identifier of the code host integration
        repo_owner: Owner (user or group) of the repository
        repo_namespace: Namespace; falls back to repo_owner when empty
        repo_name: Repository name
        remote_name: Git remote name used at checkout
        branch: Branch to check out
        tag: Tag to check out
        commit_id: Commit to check out
        commit_message: Message of the commit, when supplied by an event
        pr: Pull request number (0 when unset)
        prs: Pull request numbers for multi-PR builds
        checkout_path: Path relative to the workspace; may contain $VARS
        submodules: Whether to update submodules
    """
    repo_name: str = ""
    repo_owner: str = ""
    repo_namespace: str = ""
    source: str = ""
    codehost_id: int = 0
    remote_name: str = ""
    branch: str = ""
    tag: str = ""
    commit_id: str = ""
    commit_message: str = ""
    pr: int = 0
    prs: list[int] = field(default_factory=list)
    checkout_path: str = ""
    submodules: bool = False

    @property
    def namespace(self) -> str:
        """The effective namespace (namespace, or owner when unset)."""
        return self.repo_namespace or self.repo_owner

    @property
    def key(self) -> str:
        """Identity key: source/namespace/name."""
        return "/".join([self.source, self.namespace, self.repo_name])

    def pins_revision(self) -> bool:
        """True if any revision field is set."""
        return any(getattr(self, name) for name in REVISION_FIELDS)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "repo_name": self.repo_name,
            "repo_owner": self.repo_owner,
            "repo_namespace": self.repo_namespace,
            "source": self.source,
            "codehost_id": self.codehost_id,
            "remote_name": self.remote_name,
            "branch": self.branch,
            "tag": self.tag,
            "commit_id": self.commit_id,
            "commit_message": self.commit_message,
            "pr": self.pr,
            "prs": list(self.prs),
            "checkout_path": self.checkout_path,
            "submodules": self.submodules,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Repository":
        """
        Deserialize from dictionary.

        Unknown keys are ignored; missing keys take their defaults.

        Raises:
            TypeError: If data is not a mapping
        """
        if not isinstance(data, dict):
            raise TypeError(f"repository must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and v is not None}
        if "prs" in values:
            values["prs"] = [int(p) for p in values["prs"]]
        if "pr" in values:
            values["pr"] = int(values["pr"])
        if "codehost_id" in values:
            values["codehost_id"] = int(values["codehost_id"])
        return cls(**values)
