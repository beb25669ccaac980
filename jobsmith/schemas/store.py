"""
Spec store records - kind-specific configuration read during compilation.

These are read-only views of what the store holds: scanning definitions,
base images, image registries and external-system integrations.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .common import KeyVal, Output, ToolInstall
from .kinds import ImageFrom, ScannerType
from .repository import Repository


@dataclass
class AdvancedSetting:
    """Resource-scheduling settings of a scanning definition."""
    timeout: int = 0
    cluster_id: str = ""
    strategy_id: str = ""
    res_req: str = "low"
    res_req_spec: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AdvancedSetting":
        """Deserialize from dictionary."""
        return cls(
            timeout=int(data.get("timeout", 0) or 0),
            cluster_id=data.get("cluster_id", ""),
            strategy_id=data.get("strategy_id", ""),
            res_req=data.get("res_req", "low"),
            res_req_spec=dict(data.get("res_req_spec") or {}),
        )


@dataclass
class ScanningDefinition:
    """
    A stored scanning definition.

    Attributes:
        name: Definition name, unique within a project
        project: Owning project
        image_id: Base image to run on
        scanner_type: Scan engine (sonarQube or other)
        script: Shell script run by the scan
        parameter: sonar-project.properties body (sonarQube only)
        sonar_id: Sonar integration identifier (sonarQube only)
        enable_scanner: Run sonar-scanner after the script
        check_quality_gate: Add a quality-gate check step
        installs: Tools to install
        repos: Default repositories
        envs: Declared environment variables
        outputs: Declared outputs
        advanced_setting: Timeout and resource-scheduling settings
    """
    name: str
    project: str = ""
    image_id: str = ""
    scanner_type: ScannerType = ScannerType.OTHER
    script: str = ""
    parameter: str = ""
    sonar_id: str = ""
    enable_scanner: bool = False
    check_quality_gate: bool = False
    installs: list[ToolInstall] = field(default_factory=list)
    repos: list[Repository] = field(default_factory=list)
    envs: list[KeyVal] = field(default_factory=list)
    outputs: list[Output] = field(default_factory=list)
    advanced_setting: Optional[AdvancedSetting] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanningDefinition":
        """Deserialize from dictionary."""
        advanced = data.get("advanced_setting")
        return cls(
            name=data["name"],
            project=data.get("project", ""),
            image_id=str(data.get("image_id", "")),
            scanner_type=ScannerType(data.get("scanner_type") or ScannerType.OTHER.value),
            script=data.get("script", ""),
            parameter=data.get("parameter", ""),
            sonar_id=str(data.get("sonar_id", "")),
            enable_scanner=bool(data.get("enable_scanner", False)),
            check_quality_gate=bool(data.get("check_quality_gate", False)),
            installs=[ToolInstall.from_dict(t) for t in data.get("installs") or []],
            repos=[Repository.from_dict(r) for r in data.get("repos") or []],
            envs=[KeyVal.from_dict(e) for e in data.get("envs") or []],
            outputs=[Output.from_dict(o) for o in data.get("outputs") or []],
            advanced_setting=AdvancedSetting.from_dict(advanced) if advanced else None,
        )


@dataclass(frozen=True)
class BasicImage:
    """A base image a task runs on."""
    id: str
    value: str
    image_from: ImageFrom = ImageFrom.CUSTOM

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BasicImage":
        """Deserialize from dictionary."""
        return cls(
            id=str(data["id"]),
            value=data["value"],
            image_from=ImageFrom(data.get("image_from") or ImageFrom.CUSTOM.value),
        )


@dataclass(frozen=True)
class RegistryNamespace:
    """An image registry available to tasks."""
    id: str
    reg_addr: str
    namespace: str = ""
    access_key: str = ""
    secret_key: str = ""
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "reg_addr": self.reg_addr,
            "namespace": self.namespace,
            "access_key": self.access_key,
            "secret_key": self.secret_key,
            "is_default": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegistryNamespace":
        """Deserialize from dictionary."""
        return cls(
            id=str(data["id"]),
            reg_addr=data["reg_addr"],
            namespace=data.get("namespace", ""),
            access_key=data.get("access_key", ""),
            secret_key=data.get("secret_key", ""),
            is_default=bool(data.get("is_default", False)),
        )


@dataclass(frozen=True)
class JenkinsIntegration:
    """Credentials of a Jenkins server."""
    id: str
    url: str
    username: str = ""
    password: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JenkinsIntegration":
        """Deserialize from dictionary."""
        return cls(
            id=str(data["id"]),
            url=data["url"],
            username=data.get("username", ""),
            password=data.get("password", ""),
        )


@dataclass(frozen=True)
class SonarIntegration:
    """Address and token of a SonarQube server."""
    id: str
    server_address: str
    token: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SonarIntegration":
        """Deserialize from dictionary."""
        return cls(
            id=str(data["id"]),
            server_address=data["server_address"],
            token=data.get("token", ""),
        )
