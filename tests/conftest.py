import threading

import pytest

from jobsmith.clients.jenkins import JenkinsParameterDefinition
from jobsmith.config import JobsmithConfig
from jobsmith.errors import UpstreamLookupError
from jobsmith.jobs import JobDeps
from jobsmith.schemas import (
    AdvancedSetting,
    BasicImage,
    ImageFrom,
    JenkinsIntegration,
    Job,
    KeyVal,
    Output,
    RegistryNamespace,
    Repository,
    ScannerType,
    ScanningDefinition,
    ShareStorage,
    SonarIntegration,
    ToolInstall,
    Workflow,
)
from jobsmith.store import InMemorySpecStore


class FakeJenkinsClient:
    """
    In-memory JenkinsClient.

    results maps job name -> list of JenkinsParameterDefinition, or an
    exception to raise. Jobs listed in `blocked` wait on `release` before
    answering.
    """

    def __init__(self, results=None, blocked=()):
        self.results = dict(results or {})
        self.blocked = set(blocked)
        self.release = threading.Event()
        self.calls = []
        self._lock = threading.Lock()

    def get_job_parameters(self, job_name):
        with self._lock:
            self.calls.append(job_name)
        if job_name in self.blocked:
            self.release.wait(timeout=5)
        result = self.results.get(job_name)
        if result is None:
            raise UpstreamLookupError(f"jenkins job {job_name} not found")
        if isinstance(result, Exception):
            raise result
        return list(result)


@pytest.fixture
def config():
    return JobsmithConfig({
        "compile": {
            "base_url": "https://ci.example.com",
            "default_timeout": 60,
        }
    })


@pytest.fixture
def lint_definition():
    return ScanningDefinition(
        name="lint",
        project="demo",
        image_id="img-1",
        scanner_type=ScannerType.OTHER,
        script="make lint\r\nmake vet",
        installs=[ToolInstall(name="go", version="1.21")],
        repos=[Repository(
            source="gitlab", repo_owner="team", repo_name="svc",
            branch="main", checkout_path="src/$PROJECT",
        )],
        envs=[KeyVal("LINT_LEVEL", "strict")],
        outputs=[Output(name="REPORT")],
        advanced_setting=AdvancedSetting(timeout=30, cluster_id="c1", res_req="high"),
    )


@pytest.fixture
def sonar_definition():
    return ScanningDefinition(
        name="sonar",
        project="demo",
        image_id="img-koderover",
        scanner_type=ScannerType.SONAR,
        script="echo scanning",
        parameter="sonar.projectKey=demo-svc\nsonar.branch.name=$branch",
        sonar_id="sq-1",
        enable_scanner=True,
        check_quality_gate=True,
        repos=[Repository(source="gitlab", repo_owner="team", repo_name="svc", branch="main")],
    )


@pytest.fixture
def store(lint_definition, sonar_definition):
    return InMemorySpecStore(
        scannings=[lint_definition, sonar_definition],
        basic_images=[
            BasicImage(id="img-1", value="golang:1.21"),
            BasicImage(id="img-koderover", value="focal", image_from=ImageFrom.KODEROVER),
        ],
        registries=[RegistryNamespace(id="reg-1", reg_addr="registry.example.com", namespace="demo")],
        jenkins_integrations=[JenkinsIntegration(id="jk-1", url="https://jenkins.example.com")],
        sonar_integrations=[
            SonarIntegration(id="sq-1", server_address="https://sonar.example.com", token="s3cret"),
        ],
    )


@pytest.fixture
def jenkins_client():
    return FakeJenkinsClient({
        "build-a": [
            JenkinsParameterDefinition(name="ENV", type="ChoiceParameterDefinition",
                                       default_value="dev", choices=("dev", "prod")),
            JenkinsParameterDefinition(name="VERBOSE", type="BooleanParameterDefinition",
                                       default_value=False),
        ],
        "build-b": [
            JenkinsParameterDefinition(name="TAG", type="StringParameterDefinition",
                                       default_value="latest"),
        ],
    })


@pytest.fixture
def deps(store, jenkins_client, config):
    return JobDeps(
        store=store,
        jenkins_client_factory=lambda integration: jenkins_client,
        config=config,
    )


@pytest.fixture
def jenkins_job():
    return Job(
        name="trigger",
        kind="jenkins",
        spec={
            "id": "jk-1",
            "jobs": [
                {"job_name": "build-a", "parameters": [
                    {"name": "ENV", "value": "prod", "type": "choice", "choices": ["dev", "prod"]},
                    {"name": "STALE", "value": "x"},
                ]},
                {"job_name": "build-b", "parameters": []},
            ],
        },
    )


@pytest.fixture
def scanning_job():
    return Job(name="scan", kind="zadig-scanning", spec={"scannings": [{"name": "lint"}]})


@pytest.fixture
def workflow(jenkins_job, scanning_job):
    return Workflow(
        project="demo",
        name="ci",
        display_name="CI",
        share_storages=(ShareStorage(name="cache", path="/cache"),),
        jobs=(scanning_job, jenkins_job),
    )
