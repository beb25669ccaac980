"""Tests for the zadig-scanning job variant.

Tests cover:
- Step layout for plain and sonarQube scans
- Environment accumulation order and precedence
- Repository merging through preset, merge_args and webhook events
- Tolerant projections (get_repos, get_outputs)
- Compile and lint failures
"""

import copy

import pytest

from jobsmith.errors import CompileError, EmptyJobError, UpstreamLookupError, ValidationError
from jobsmith.jobs import JobDeps, ScanningJob
from jobsmith.schemas import (
    FreestyleTaskSpec,
    Job,
    KeyVal,
    Repository,
    ScannerType,
    ScanningDefinition,
    ScanningJobSpec,
    SonarIntegration,
    StepKind,
)
from jobsmith.store import InMemorySpecStore


def _compile(job, workflow, deps, task_id=5):
    return ScanningJob(job, workflow, deps).to_jobs(task_id)


class TestPlainScan:
    """A scan with scanner type `other`."""

    def test_five_steps_in_order(self, scanning_job, workflow, deps):
        task = _compile(scanning_job, workflow, deps)[0]

        assert [s.step_type for s in task.steps] == [
            StepKind.TOOLS, StepKind.GIT, StepKind.DEBUG_BEFORE, StepKind.SHELL, StepKind.DEBUG_AFTER,
        ]
        assert [s.name for s in task.steps] == [
            "lint-tool-install", "lint-git", "lint-debug-before", "lint-shell", "lint-debug-after",
        ]
        assert all(s.job_name == "lint-scan" for s in task.steps)

    def test_task_identity(self, scanning_job, workflow, deps):
        task = _compile(scanning_job, workflow, deps)[0]
        assert task.name == "lint-scan"
        assert task.key == "scan.lint"
        assert task.job_type == "zadig-scanning"
        assert task.job_info == {"job_name": "scan", "scanning_name": "lint"}
        assert task.timeout == 30
        assert [o.name for o in task.outputs] == ["REPORT"]

    def test_shell_script_captures_outputs(self, scanning_job, workflow, deps):
        shell = _compile(scanning_job, workflow, deps)[0].steps[3]
        assert shell.spec.scripts == (
            "make lint", "make vet", "set +ex", "echo $REPORT > /zadig/results/REPORT",
        )
        assert not shell.spec.skip_prepare

    def test_git_step_renders_repos(self, scanning_job, workflow, deps):
        git = _compile(scanning_job, workflow, deps)[0].steps[1]
        repo = git.spec.repos[0]
        assert repo.checkout_path == "src/demo"
        assert repo.remote_name == "origin"

    def test_properties(self, scanning_job, workflow, deps):
        properties = _compile(scanning_job, workflow, deps)[0].spec.properties
        assert properties.build_os == "golang:1.21"
        assert properties.image_from == "custom"
        assert properties.resource_request == "high"
        assert properties.cluster_id == "c1"
        assert properties.timeout == 30
        assert [r.id for r in properties.registries] == ["reg-1"]
        assert properties.share_storage_details == ()

    def test_env_order(self, scanning_job, workflow, deps):
        envs = _compile(scanning_job, workflow, deps)[0].spec.properties.envs
        assert [e.key for e in envs] == [
            "CI", "PROJECT", "WORKFLOW", "WORKFLOW_DISPLAY_NAME", "TASK_ID", "TASK_URL",
            "INFRASTRUCTURE", "REPONAME_0", "REPO_0", "svc_BRANCH", "svc_ORG",
            "SCANNING_NAME", "LINT_LEVEL", "BRANCH",
        ]
        values = {e.key: e.value for e in envs}
        assert values["TASK_ID"] == "5"
        assert values["TASK_URL"] == "https://ci.example.com/workflows/ci/tasks/5"
        assert values["BRANCH"] == "main"

    def test_definition_env_overrides_basics(self, scanning_job, workflow, deps, lint_definition):
        lint_definition.envs.append(KeyVal("PROJECT", "custom"))
        properties = _compile(scanning_job, workflow, deps)[0].spec.properties
        assert properties.get_env("PROJECT").value == "custom"
        assert [e.value for e in properties.envs if e.key == "PROJECT"] == ["demo", "custom"]

    def test_default_timeout(self, scanning_job, workflow, deps, lint_definition):
        lint_definition.advanced_setting = None
        task = _compile(scanning_job, workflow, deps)[0]
        assert task.timeout == 60
        assert task.spec.properties.resource_request == ""

    def test_share_storage(self, workflow, deps):
        job = Job("scan", "zadig-scanning", {"scannings": [{
            "name": "lint",
            "share_storage_info": {
                "enabled": True,
                "share_storages": [{"name": "cache"}, {"name": "undeclared"}],
            },
        }]})
        details = _compile(job, workflow, deps)[0].spec.properties.share_storage_details
        assert [(d.name, d.sub_path, d.mount_path) for d in details] == [("cache", "ci/5/cache", "/cache")]


class TestNoRepositories:
    """Definitions that declare no repositories."""

    def test_plain_scan(self, workflow, deps, store):
        store.add_scanning(ScanningDefinition(
            name="lint-svc", project="demo", image_id="img-1", script="go vet ./...",
        ))
        job = Job("lint", "zadig-scanning", {"scannings": [{"name": "lint-svc"}]})
        task = _compile(job, workflow, deps)[0]

        assert [s.step_type for s in task.steps] == [
            StepKind.TOOLS, StepKind.GIT, StepKind.DEBUG_BEFORE, StepKind.SHELL, StepKind.DEBUG_AFTER,
        ]
        assert task.steps[1].spec.repos == ()
        assert task.steps[3].spec.scripts == ("go vet ./...", "set +ex")
        assert task.spec.properties.get_env("BRANCH") is None
        assert task.spec.properties.get_env("REPONAME_0") is None

    def test_sonar_scan_runs_in_workspace_root(self, workflow, deps, store):
        store.add_scanning(ScanningDefinition(
            name="sonar-svc",
            project="demo",
            image_id="img-1",
            scanner_type=ScannerType.SONAR,
            script="go vet ./...",
            parameter="sonar.projectKey=svc\nsonar.branch.name=$branch",
            sonar_id="sq-1",
            enable_scanner=True,
            check_quality_gate=True,
        ))
        job = Job("quality", "zadig-scanning", {"scannings": [{"name": "sonar-svc"}]})
        task = _compile(job, workflow, deps)[0]

        scanner = task.steps[4]
        assert scanner.spec.scripts[1] == "cd "
        assert "sonar.branch.name=" in scanner.spec.scripts
        assert task.steps[5].spec.check_dir == ""
        assert task.spec.properties.get_env("BRANCH") is None


class TestSonarScan:
    """A scan with scanner type `sonarQube`."""

    @pytest.fixture
    def sonar_job(self):
        return Job("quality", "zadig-scanning", {"scannings": [{"name": "sonar"}]})

    def test_step_order(self, sonar_job, workflow, deps):
        task = _compile(sonar_job, workflow, deps)[0]
        assert [s.step_type for s in task.steps] == [
            StepKind.TOOLS, StepKind.GIT, StepKind.DEBUG_BEFORE,
            StepKind.SHELL, StepKind.SHELL, StepKind.SONAR_CHECK, StepKind.DEBUG_AFTER,
        ]
        assert task.steps[3].spec.skip_prepare
        assert task.steps[4].name == "sonar-sonar-shell"

    def test_sonar_envs(self, sonar_job, workflow, deps):
        properties = _compile(sonar_job, workflow, deps)[0].spec.properties
        assert [e.key for e in properties.envs[-3:]] == ["SONAR_LINK", "SONAR_TOKEN", "SONAR_URL"]
        assert properties.get_env("SONAR_LINK").value == "https://sonar.example.com/dashboard?id=demo-svc"
        assert properties.get_env("SONAR_TOKEN") == KeyVal("SONAR_TOKEN", "s3cret", is_credential=True)
        assert not properties.get_env("SONAR_URL").is_credential

    def test_scanner_script(self, sonar_job, workflow, deps):
        scanner = _compile(sonar_job, workflow, deps)[0].steps[4]
        assert scanner.spec.scripts == (
            "set -e",
            "cd svc",
            "cat > sonar-project.properties << EOF",
            "sonar.login=s3cret",
            "sonar.host.url=https://sonar.example.com",
            "sonar.projectKey=demo-svc",
            "sonar.branch.name=main",
            "EOF",
            "sonar-scanner",
        )

    def test_quality_gate(self, sonar_job, workflow, deps):
        check = _compile(sonar_job, workflow, deps)[0].steps[5]
        assert check.spec.check_dir == "svc"
        assert check.spec.sonar_server == "https://sonar.example.com"
        assert check.spec.sonar_token == "s3cret"

    def test_gate_and_scanner_optional(self, sonar_job, workflow, deps, sonar_definition):
        sonar_definition.enable_scanner = False
        sonar_definition.check_quality_gate = False
        task = _compile(sonar_job, workflow, deps)[0]
        assert [s.step_type for s in task.steps] == [
            StepKind.TOOLS, StepKind.GIT, StepKind.DEBUG_BEFORE, StepKind.SHELL, StepKind.DEBUG_AFTER,
        ]

    def test_koderover_image(self, sonar_job, workflow, deps):
        properties = _compile(sonar_job, workflow, deps)[0].spec.properties
        assert properties.build_os == "koderover.tencentcloudcr.com/koderover-public/build-base:focal-amd64"

    def test_bad_sonar_address_gives_empty_link(self, sonar_job, workflow, deps, store):
        store.add_sonar_integration(SonarIntegration(id="sq-1", server_address="not a url", token="t"))
        properties = _compile(sonar_job, workflow, deps)[0].spec.properties
        assert properties.get_env("SONAR_LINK").value == ""

    def test_missing_sonar_integration(self, sonar_job, workflow, deps, sonar_definition):
        sonar_definition.sonar_id = "sq-missing"
        with pytest.raises(CompileError, match="sq-missing"):
            _compile(sonar_job, workflow, deps)


class TestCompileFailures:
    """Compile errors and empty jobs."""

    def test_empty_job(self, workflow, deps):
        with pytest.raises(EmptyJobError):
            _compile(Job("scan", "zadig-scanning", {"scannings": []}), workflow, deps)

    def test_missing_definition_fails_whole_job(self, workflow, deps):
        job = Job("scan", "zadig-scanning", {"scannings": [{"name": "lint"}, {"name": "gone"}]})
        before = copy.deepcopy(job.spec)
        with pytest.raises(CompileError, match="gone"):
            _compile(job, workflow, deps)
        assert job.spec == before

    def test_missing_image(self, scanning_job, workflow, deps, lint_definition):
        lint_definition.image_id = "img-missing"
        with pytest.raises(CompileError, match="img-missing"):
            _compile(scanning_job, workflow, deps)


class TestRepoMerging:
    """Repositories flowing through preset, merge_args and webhook events."""

    def test_preset_fills_stored_repos(self, scanning_job, workflow, deps):
        ScanningJob(scanning_job, workflow, deps).set_preset()
        spec = ScanningJobSpec.from_dict(scanning_job.spec)
        assert [r.key for r in spec.scannings[0].repos] == ["gitlab/team/svc"]
        assert spec.scannings[0].repos[0].branch == "main"

    def test_preset_keeps_user_revision(self, workflow, deps):
        job = Job("scan", "zadig-scanning", {"scannings": [{
            "name": "lint",
            "repos": [{"source": "gitlab", "repo_owner": "team", "repo_name": "svc", "branch": "dev"}],
        }]})
        ScanningJob(job, workflow, deps).set_preset()
        repos = ScanningJobSpec.from_dict(job.spec).scannings[0].repos
        assert repos[0].branch == "dev"
        assert repos[0].checkout_path == "src/$PROJECT"

    def test_preset_missing_definition(self, workflow, deps):
        job = Job("scan", "zadig-scanning", {"scannings": [{"name": "gone"}]})
        before = copy.deepcopy(job.spec)
        with pytest.raises(UpstreamLookupError):
            ScanningJob(job, workflow, deps).set_preset()
        assert job.spec == before

    def test_webhook_repo_reaches_task(self, scanning_job, workflow, deps):
        variant = ScanningJob(scanning_job, workflow, deps)
        variant.merge_webhook_repo(
            Repository(source="gitlab", repo_owner="team", repo_name="svc", branch="feature", pr=9)
        )
        task = variant.to_jobs(1)[0]
        assert task.spec.properties.get_env("BRANCH").value == "feature"
        assert task.spec.properties.get_env("svc_PR").value == "9"
        assert task.steps[1].spec.repos[0].branch == "feature"

    def test_merge_args(self, scanning_job, workflow, deps):
        args = Job("scan", "zadig-scanning", {"scannings": [
            {"name": "lint", "repos": [{"source": "gitlab", "repo_owner": "team",
                                        "repo_name": "svc", "tag": "v2"}]},
            {"name": "unknown", "repos": [{"repo_name": "x"}]},
        ]})
        ScanningJob(scanning_job, workflow, deps).merge_args(args)
        spec = ScanningJobSpec.from_dict(scanning_job.spec)
        assert [s.name for s in spec.scannings] == ["lint"]
        assert spec.scannings[0].repos[0].tag == "v2"

    def test_merge_args_mismatch_is_noop(self, scanning_job, workflow, deps):
        before = copy.deepcopy(scanning_job.spec)
        ScanningJob(scanning_job, workflow, deps).merge_args(Job("other", "zadig-scanning", {}))
        assert scanning_job.spec == before


class TestProjections:
    """get_repos and get_outputs skip missing definitions."""

    def test_get_outputs(self, scanning_job, workflow, deps):
        result = ScanningJob(scanning_job, workflow, deps).get_outputs()
        assert result.values == ["{{.job.scan.lint.output.REPORT}}"]
        assert result.warnings == []

    def test_get_outputs_skips_missing(self, workflow, deps):
        job = Job("scan", "zadig-scanning", {"scannings": [{"name": "gone"}, {"name": "lint"}]})
        result = ScanningJob(job, workflow, deps).get_outputs()
        assert result.values == ["{{.job.scan.lint.output.REPORT}}"]
        assert len(result.warnings) == 1
        assert "gone" in result.warnings[0]

    def test_get_repos(self, workflow, deps):
        job = Job("scan", "zadig-scanning", {"scannings": [{"name": "gone"}, {"name": "lint"}]})
        result = ScanningJob(job, workflow, deps).get_repos()
        assert [r.repo_name for r in result.values] == ["svc"]
        assert len(result.warnings) == 1

    def test_projections_do_not_mutate(self, scanning_job, workflow, deps):
        before = copy.deepcopy(scanning_job.spec)
        variant = ScanningJob(scanning_job, workflow, deps)
        variant.get_repos()
        variant.get_outputs()
        assert scanning_job.spec == before


class TestLint:
    """Tests for ScanningJob.lint_job."""

    def test_valid(self, scanning_job, workflow, deps):
        ScanningJob(scanning_job, workflow, deps).lint_job()

    def test_missing_definition(self, workflow, deps):
        job = Job("scan", "zadig-scanning", {"scannings": [{"name": "gone"}]})
        with pytest.raises(ValidationError) as exc_info:
            ScanningJob(job, workflow, deps).lint_job()
        assert exc_info.value.reference == "gone"

    def test_missing_sonar_integration(self, workflow, sonar_definition, config):
        store = InMemorySpecStore(scannings=[sonar_definition])
        deps = JobDeps(store=store, config=config)
        job = Job("quality", "zadig-scanning", {"scannings": [{"name": "sonar"}]})
        with pytest.raises(ValidationError) as exc_info:
            ScanningJob(job, workflow, deps).lint_job()
        assert exc_info.value.reference == "sq-1"


def test_task_spec_is_freestyle(scanning_job, workflow, deps):
    assert isinstance(_compile(scanning_job, workflow, deps)[0].spec, FreestyleTaskSpec)
