"""
Configuration management for jobsmith.

Loads and validates jobsmith.yaml. Every key is optional; missing keys take
the defaults below.

    compile:
      reaper_image: "koderover.tencentcloudcr.com/koderover-public/build-base:${BuildOS}-amd64"
      job_output_dir: /zadig/results/
      task_url_template: "{base_url}/workflows/{workflow}/tasks/{task_id}"
      base_url: http://localhost
      infrastructure: kubernetes
      default_timeout: 60
    clients:
      http_timeout_s: null
    logging:
      level: INFO
      format: pretty
      file: null
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "JOBSMITH_CONFIG"

DEFAULT_REAPER_IMAGE = "koderover.tencentcloudcr.com/koderover-public/build-base:${BuildOS}-amd64"
DEFAULT_JOB_OUTPUT_DIR = "/zadig/results/"
DEFAULT_TASK_URL_TEMPLATE = "{base_url}/workflows/{workflow}/tasks/{task_id}"


class ConfigError(Exception):
    """Configuration validation error."""
    pass


class JobsmithConfig:
    """Complete jobsmith configuration."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, config_path: Optional[Path] = None):
        self.config_path = config_path
        self.raw_config = data or {}

        compile_cfg = self.raw_config.get("compile") or {}
        self.reaper_image = compile_cfg.get("reaper_image", DEFAULT_REAPER_IMAGE)
        self.job_output_dir = compile_cfg.get("job_output_dir", DEFAULT_JOB_OUTPUT_DIR)
        self.task_url_template = compile_cfg.get("task_url_template", DEFAULT_TASK_URL_TEMPLATE)
        self.base_url = compile_cfg.get("base_url", "http://localhost")
        self.infrastructure = compile_cfg.get("infrastructure", "kubernetes")
        self.default_timeout = compile_cfg.get("default_timeout", 60)

        clients = self.raw_config.get("clients") or {}
        self.http_timeout_s = clients.get("http_timeout_s")

        # Logging
        self.logging = self.raw_config.get("logging") or {}

    def task_url(self, workflow: str, task_id: int) -> str:
        """Render the URL of one workflow run."""
        return self.task_url_template.format(
            base_url=self.base_url.rstrip("/"),
            workflow=workflow,
            task_id=task_id,
        )

    def get_log_level(self) -> str:
        """Get logging level."""
        return str(self.logging.get("level", "INFO")).upper()

    def get_log_format(self) -> str:
        """Get log format (structured or pretty)."""
        return self.logging.get("format", "pretty")

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path, if file logging is enabled."""
        log_file = self.logging.get("file")
        return Path(log_file) if log_file else None

    def validate(self) -> None:
        """Validate configuration values."""
        if "${BuildOS}" not in self.reaper_image:
            raise ConfigError("compile.reaper_image must contain ${BuildOS}")

        if not isinstance(self.default_timeout, int) or self.default_timeout < 0:
            raise ConfigError(
                f"compile.default_timeout must be a non-negative integer, got {self.default_timeout!r}"
            )

        if self.http_timeout_s is not None:
            if not isinstance(self.http_timeout_s, (int, float)) or self.http_timeout_s <= 0:
                raise ConfigError(
                    f"clients.http_timeout_s must be a positive number, got {self.http_timeout_s!r}"
                )

        if self.get_log_format() not in ("pretty", "structured"):
            raise ConfigError(
                f"logging.format must be 'pretty' or 'structured', got {self.get_log_format()!r}"
            )

        try:
            self.task_url("workflow", 0)
        except (KeyError, IndexError) as e:
            raise ConfigError(f"compile.task_url_template has an unknown placeholder: {e}")

    def __repr__(self) -> str:
        return (
            f"JobsmithConfig(infrastructure={self.infrastructure}, "
            f"default_timeout={self.default_timeout}, path={self.config_path})"
        )


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    """Load and parse a YAML configuration file."""
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")
    return config


def load_config(config_path: Optional[Path] = None) -> JobsmithConfig:
    """
    Load jobsmith configuration.

    Args:
        config_path: Path to config file. Defaults to $JOBSMITH_CONFIG;
                     built-in defaults are used when neither is set.

    Returns:
        Validated JobsmithConfig instance

    Raises:
        ConfigError: If config is invalid or the file is missing
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            config_path = Path(env_path)

    if config_path is None:
        config = JobsmithConfig()
    else:
        config_path = Path(config_path)
        config = JobsmithConfig(_load_yaml(config_path), config_path=config_path)

    config.validate()
    return config
