"""
jobsmith.schemas - Data structures for job compilation.

Workflow + Job (opaque spec) -> typed Job Spec -> JobTask + StepTask -> TaskGraph

Lifecycle:
1. Workflow / Job: Declared pipeline and its jobs; Job.spec is an opaque payload
2. Job Spec: Kind-specific typed form decoded from Job.spec on demand
3. Stored records: Scanning definitions, images, registries, integrations
4. JobTask / StepTask: Compiled, ordered units of execution
5. TaskGraph: The ordered task list handed to the execution engine
"""

from .kinds import (
    JobKind,
    StepKind,
    ParamType,
    ScannerType,
    ImageFrom,
)
from .repository import Repository
from .workflow import (
    Job,
    Workflow,
    ShareStorage,
    ShareStorageInfo,
)
from .job_spec import (
    JenkinsJobParameter,
    JenkinsJobInfo,
    JenkinsJobSpec,
    ScanningTarget,
    ScanningJobSpec,
)
from .common import (
    KeyVal,
    Output,
    ToolInstall,
)
from .store import (
    AdvancedSetting,
    ScanningDefinition,
    BasicImage,
    RegistryNamespace,
    JenkinsIntegration,
    SonarIntegration,
)
from .task import (
    ToolInstallStepSpec,
    GitStepSpec,
    ShellStepSpec,
    SonarCheckStepSpec,
    StepTask,
    StorageDetail,
    JobProperties,
    FreestyleTaskSpec,
    JenkinsTaskSpec,
    JobTask,
    TaskGraph,
)

__all__ = [
    # Kinds
    "JobKind",
    "StepKind",
    "ParamType",
    "ScannerType",
    "ImageFrom",
    # Workflow
    "Repository",
    "Job",
    "Workflow",
    "ShareStorage",
    "ShareStorageInfo",
    # Job specs
    "JenkinsJobParameter",
    "JenkinsJobInfo",
    "JenkinsJobSpec",
    "ScanningTarget",
    "ScanningJobSpec",
    # Stored records
    "KeyVal",
    "Output",
    "ToolInstall",
    "AdvancedSetting",
    "ScanningDefinition",
    "BasicImage",
    "RegistryNamespace",
    "JenkinsIntegration",
    "SonarIntegration",
    # Tasks
    "ToolInstallStepSpec",
    "GitStepSpec",
    "ShellStepSpec",
    "SonarCheckStepSpec",
    "StepTask",
    "StorageDetail",
    "JobProperties",
    "FreestyleTaskSpec",
    "JenkinsTaskSpec",
    "JobTask",
    "TaskGraph",
]
