"""
Task assembly helpers shared by job variants.
"""

import re
from typing import Optional, Sequence

from jobsmith.config import JobsmithConfig
from jobsmith.schemas import KeyVal, Output, ShareStorageInfo, StorageDetail, Workflow

# job_info key carrying the declaring job's name
JOB_NAME_KEY = "job_name"

# Kubernetes object names are limited to 63 characters
MAX_TASK_NAME_LENGTH = 63


def job_key(job_name: str, target_name: str) -> str:
    """Composite key of a task: `<job>.<sub-target>`."""
    return ".".join([job_name, target_name])


def job_name_format(name: str) -> str:
    """
    Format a task name for the execution cluster.

    Lowercased, characters outside [a-z0-9-] replaced by '-', cut to 63
    characters and trimmed of leading/trailing '-'.
    """
    name = re.sub(r"[^a-z0-9-]", "-", name.lower())
    return name[:MAX_TASK_NAME_LENGTH].strip("-")


def split_script(script: str) -> list[str]:
    """Split a stored script into lines, normalizing CRLF line endings."""
    return script.replace("\r\n", "\n").split("\n")


def output_script(outputs: Sequence[Output], output_dir: str) -> list[str]:
    """
    Lines appended to a shell step to capture declared outputs.

    Each output NAME is written from $NAME to <output_dir>/NAME.
    """
    lines = ["set +ex"]
    for output in outputs:
        path = output_dir.rstrip("/") + "/" + output.name
        lines.append(f"echo ${output.name} > {path}")
    return lines


def output_keys(key: str, outputs: Sequence[Output]) -> list[str]:
    """Reference strings later jobs use to read outputs of task `key`."""
    return [f"{{{{.job.{key}.output.{output.name}}}}}" for output in outputs]


def workflow_variables(workflow: Workflow, task_id: int, config: JobsmithConfig) -> list[KeyVal]:
    """Basic environment entries every freestyle task receives."""
    return [
        KeyVal("CI", "true"),
        KeyVal("PROJECT", workflow.project),
        KeyVal("WORKFLOW", workflow.name),
        KeyVal("WORKFLOW_DISPLAY_NAME", workflow.display_name),
        KeyVal("TASK_ID", str(task_id)),
        KeyVal("TASK_URL", config.task_url(workflow.name, task_id)),
        KeyVal("INFRASTRUCTURE", config.infrastructure),
    ]


def share_storage_details(
    workflow: Workflow,
    info: Optional[ShareStorageInfo],
    task_id: int,
) -> tuple[StorageDetail, ...]:
    """
    Shared volumes to mount for a sub-target.

    Only storages the sub-target enables and the workflow declares are
    mounted; each run gets its own sub path.
    """
    if info is None or not info.enabled:
        return ()
    declared = {storage.name: storage for storage in workflow.share_storages}
    details = []
    for storage in info.share_storages:
        if storage.name not in declared:
            continue
        details.append(StorageDetail(
            name=storage.name,
            sub_path=f"{workflow.name}/{task_id}/{storage.name}",
            mount_path=declared[storage.name].path,
        ))
    return tuple(details)
