"""
jobsmith - Workflow job compiler

Turns declarative workflow jobs (Jenkins triggers, code scans, ...) into
ordered task graphs for a downstream task runner.
"""

__version__ = "0.1.0"


__all__ = ["Compiler", "compile_workflow", "JobsmithConfig", "load_config"]

from .config import JobsmithConfig, load_config
from .compiler import Compiler, compile_workflow
