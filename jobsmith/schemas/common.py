"""
Small value types shared by stored definitions and compiled tasks.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class KeyVal:
    """
    An environment entry injected into a task's execution environment.

    Attributes:
        key: Variable name
        value: Variable value
        is_credential: True if the value must be masked in logs
    """
    key: str
    value: str = ""
    is_credential: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"key": self.key, "value": self.value, "is_credential": self.is_credential}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KeyVal":
        """Deserialize from dictionary."""
        value = data.get("value")
        return cls(
            key=data["key"],
            value="" if value is None else str(value),
            is_credential=bool(data.get("is_credential", False)),
        )


@dataclass(frozen=True)
class Output:
    """A named output a task publishes for later jobs."""
    name: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Output":
        """Deserialize from dictionary."""
        return cls(name=data["name"], description=data.get("description", ""))


@dataclass(frozen=True)
class ToolInstall:
    """A tool (and version) to install before a task runs."""
    name: str
    version: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"name": self.name, "version": self.version}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolInstall":
        """Deserialize from dictionary."""
        return cls(name=data["name"], version=str(data.get("version", "")))
