"""
Spec store - read-only access to stored job-kind configuration.

The spec store holds scanning definitions, base images, image registries
and external-system integrations. The core consumes it through the
SpecStore protocol so that:
1. The compilation layer has no document-store imports
2. The backend can be swapped (database, YAML file, in-memory fixture)
3. Testing is simplified via in-memory implementations

Every find_* method raises NotFoundError when the record does not exist.
"""

import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

import yaml

from jobsmith.errors import NotFoundError
from jobsmith.schemas import (
    BasicImage,
    JenkinsIntegration,
    RegistryNamespace,
    ScanningDefinition,
    SonarIntegration,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class SpecStore(Protocol):
    """Protocol for spec store lookups."""

    def find_scanning(self, project: str, name: str) -> ScanningDefinition:
        """Find a scanning definition by project and name."""
        ...

    def find_basic_image(self, image_id: str) -> BasicImage:
        """Find a base image by id."""
        ...

    def list_registries(self) -> list[RegistryNamespace]:
        """List the image registries available to tasks."""
        ...

    def find_jenkins_integration(self, integration_id: str) -> JenkinsIntegration:
        """Find Jenkins credentials by integration id."""
        ...

    def find_sonar_integration(self, integration_id: str) -> SonarIntegration:
        """Find a SonarQube server by integration id."""
        ...


class InMemorySpecStore:
    """
    Dictionary-backed SpecStore.

    Usage:
        store = InMemorySpecStore()
        store.add_scanning(ScanningDefinition(name="lint", project="demo", image_id="img"))
        store.add_basic_image(BasicImage(id="img", value="ubuntu:22.04"))
    """

    def __init__(
        self,
        scannings: Optional[Iterable[ScanningDefinition]] = None,
        basic_images: Optional[Iterable[BasicImage]] = None,
        registries: Optional[Iterable[RegistryNamespace]] = None,
        jenkins_integrations: Optional[Iterable[JenkinsIntegration]] = None,
        sonar_integrations: Optional[Iterable[SonarIntegration]] = None,
    ):
        self._scannings: dict[tuple[str, str], ScanningDefinition] = {}
        self._basic_images: dict[str, BasicImage] = {}
        self._registries: list[RegistryNamespace] = list(registries or [])
        self._jenkins: dict[str, JenkinsIntegration] = {}
        self._sonar: dict[str, SonarIntegration] = {}

        for scanning in scannings or []:
            self.add_scanning(scanning)
        for image in basic_images or []:
            self.add_basic_image(image)
        for integration in jenkins_integrations or []:
            self.add_jenkins_integration(integration)
        for integration in sonar_integrations or []:
            self.add_sonar_integration(integration)

    def add_scanning(self, scanning: ScanningDefinition) -> None:
        self._scannings[(scanning.project, scanning.name)] = scanning

    def add_basic_image(self, image: BasicImage) -> None:
        self._basic_images[image.id] = image

    def add_registry(self, registry: RegistryNamespace) -> None:
        self._registries.append(registry)

    def add_jenkins_integration(self, integration: JenkinsIntegration) -> None:
        self._jenkins[integration.id] = integration

    def add_sonar_integration(self, integration: SonarIntegration) -> None:
        self._sonar[integration.id] = integration

    def remove_scanning(self, project: str, name: str) -> None:
        """Delete a scanning definition (no-op if absent)."""
        self._scannings.pop((project, name), None)

    def find_scanning(self, project: str, name: str) -> ScanningDefinition:
        try:
            return self._scannings[(project, name)]
        except KeyError:
            raise NotFoundError(f"scanning {name} not found in project {project}") from None

    def find_basic_image(self, image_id: str) -> BasicImage:
        try:
            return self._basic_images[image_id]
        except KeyError:
            raise NotFoundError(f"basic image {image_id} not found") from None

    def list_registries(self) -> list[RegistryNamespace]:
        return list(self._registries)

    def find_jenkins_integration(self, integration_id: str) -> JenkinsIntegration:
        try:
            return self._jenkins[integration_id]
        except KeyError:
            raise NotFoundError(f"jenkins integration {integration_id} not found") from None

    def find_sonar_integration(self, integration_id: str) -> SonarIntegration:
        try:
            return self._sonar[integration_id]
        except KeyError:
            raise NotFoundError(f"sonar integration {integration_id} not found") from None


def store_from_dict(data: dict[str, Any]) -> InMemorySpecStore:
    """
    Build an InMemorySpecStore from a plain mapping.

    Expected keys (all optional): scannings, basic_images, registries,
    jenkins_integrations, sonar_integrations. Each is a list of records.

    Raises:
        ValueError: If a record is malformed
    """
    try:
        return InMemorySpecStore(
            scannings=[ScanningDefinition.from_dict(s) for s in data.get("scannings") or []],
            basic_images=[BasicImage.from_dict(i) for i in data.get("basic_images") or []],
            registries=[RegistryNamespace.from_dict(r) for r in data.get("registries") or []],
            jenkins_integrations=[
                JenkinsIntegration.from_dict(j) for j in data.get("jenkins_integrations") or []
            ],
            sonar_integrations=[
                SonarIntegration.from_dict(s) for s in data.get("sonar_integrations") or []
            ],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid store record: {e}") from e


def load_store(path: Path | str) -> InMemorySpecStore:
    """
    Load a spec store snapshot from a YAML (or JSON) file.

    Args:
        path: Path to the store file

    Returns:
        InMemorySpecStore populated from the file

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file cannot be parsed or a record is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Store file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in store file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Store file {path} must contain a mapping")

    store = store_from_dict(data)
    logger.debug(f"Loaded spec store from {path}")
    return store
