"""
Enumerations shared by job specs, stored definitions and compiled tasks.

- JobKind: discriminator selecting the job variant
- StepKind: action type of one compiled step
- ParamType: declared type of an external-trigger parameter
- ScannerType: scan engine of a stored scanning definition
- ImageFrom: origin of a base image
"""

from enum import Enum


class JobKind(str, Enum):
    """
    Job kinds known to the compiler.

    Naming convention matches the `type` field of workflow job declarations.
    """
    JENKINS = "jenkins"
    ZADIG_SCANNING = "zadig-scanning"

    @classmethod
    def from_string(cls, value: str) -> "JobKind":
        """Parse a JobKind from its string value."""
        for kind in cls:
            if kind.value == value:
                return kind
        raise ValueError(f"Unknown job kind: {value}")


class StepKind(str, Enum):
    """
    Step types in the order they bracket a freestyle task.

    tools -> git -> debug_before -> (shell | sonar_check)* -> debug_after
    """
    TOOLS = "tools"
    GIT = "git"
    DEBUG_BEFORE = "debug_before"
    SHELL = "shell"
    SONAR_CHECK = "sonar_check"
    DEBUG_AFTER = "debug_after"


class ParamType(str, Enum):
    """Parameter types for external-trigger jobs."""
    STRING = "string"
    CHOICE = "choice"
    TEXT = "text"
    BOOL = "bool"

    @classmethod
    def from_jenkins(cls, definition_type: str) -> "ParamType":
        """
        Map a Jenkins parameter definition class to a ParamType.

        Unrecognized definition types fall back to STRING.
        """
        return JENKINS_PARAMETER_TYPES.get(definition_type, cls.STRING)


JENKINS_PARAMETER_TYPES = {
    "StringParameterDefinition": ParamType.STRING,
    "ChoiceParameterDefinition": ParamType.CHOICE,
    "TextParameterDefinition": ParamType.TEXT,
    "BooleanParameterDefinition": ParamType.BOOL,
}


class ScannerType(str, Enum):
    """Scan engines supported by scanning definitions."""
    SONAR = "sonarQube"
    OTHER = "other"


class ImageFrom(str, Enum):
    """Where a base image comes from."""
    KODEROVER = "koderover"
    CUSTOM = "custom"
