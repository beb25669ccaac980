"""
jobsmith.jobs - Job variants implementing the Job Lifecycle Contract.

- base: the contract, JobDeps, LookupResult, payload decode/encode
- jenkins: `jenkins` external-trigger jobs
- scanning: `zadig-scanning` quality/scanning jobs
- registry: kind -> variant dispatch
"""

from .base import (
    JobDeps,
    JobVariant,
    LookupResult,
    decode_spec,
    encode_spec,
)
from .jenkins import JenkinsJob
from .scanning import ScanningJob
from .registry import JobVariantRegistry

__all__ = [
    "JobDeps",
    "JobVariant",
    "LookupResult",
    "decode_spec",
    "encode_spec",
    "JenkinsJob",
    "ScanningJob",
    "JobVariantRegistry",
]
