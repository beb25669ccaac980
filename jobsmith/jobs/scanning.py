"""
ScanningJob - runs stored scanning definitions as freestyle tasks.

Each scanning target names a stored ScanningDefinition and may override its
repositories. A target compiles to one task whose steps are:

    tools -> git -> debug_before -> <scan steps> -> debug_after

Scan steps by engine:
- other:     shell (script + output capture)
- sonarQube: shell (script + output capture)
             [shell writing sonar-project.properties and running sonar-scanner]
             [sonar_check quality gate]

Environment entries accumulate in this order (a later entry with the same
key wins on lookup, earlier entries are kept):
workflow basics -> repository variables -> SCANNING_NAME -> definition envs
-> BRANCH -> SONAR_LINK, SONAR_TOKEN, SONAR_URL (sonarQube only)
"""

import logging

from jobsmith.clients.sonar import get_project_key
from jobsmith.errors import (
    CompileError,
    EmptyJobError,
    JobsmithError,
    UpstreamLookupError,
    ValidationError,
)
from jobsmith.repos import first_repo_location, merge_repos, render_repos, repo_variables
from jobsmith.schemas import (
    BasicImage,
    FreestyleTaskSpec,
    GitStepSpec,
    ImageFrom,
    Job,
    JobKind,
    JobProperties,
    JobTask,
    KeyVal,
    Repository,
    ScannerType,
    ScanningDefinition,
    ScanningJobSpec,
    ScanningTarget,
    ShellStepSpec,
    SonarCheckStepSpec,
    StepKind,
    StepTask,
    ToolInstallStepSpec,
    Workflow,
)

from .base import JobDeps, LookupResult, decode_spec, encode_spec
from .common import (
    JOB_NAME_KEY,
    job_key,
    job_name_format,
    output_keys,
    output_script,
    share_storage_details,
    split_script,
    workflow_variables,
)

logger = logging.getLogger(__name__)

SONAR_SCRIPT_TEMPLATE = """set -e
cd {directory}
cat > sonar-project.properties << EOF
{properties}
EOF
sonar-scanner"""


class ScanningJob:
    """Job variant for `zadig-scanning` jobs."""

    kind = JobKind.ZADIG_SCANNING

    def __init__(self, job: Job, workflow: Workflow, deps: JobDeps):
        self.job = job
        self.workflow = workflow
        self.deps = deps

    def _decode(self) -> ScanningJobSpec:
        return decode_spec(self.job, ScanningJobSpec)

    def _find_definition(self, name: str) -> ScanningDefinition:
        return self.deps.store.find_scanning(self.workflow.project, name)

    def instantiate(self) -> None:
        encode_spec(self.job, self._decode())

    def set_preset(self) -> None:
        """
        Merge each target's stored repositories with the user's.

        Raises:
            DecodeError: If the job payload is malformed
            UpstreamLookupError: If a scanning definition cannot be found
        """
        spec = self._decode()
        for scanning in spec.scannings:
            try:
                definition = self._find_definition(scanning.name)
            except JobsmithError as e:
                raise UpstreamLookupError(f"find scanning {scanning.name} error: {e}") from e
            scanning.repos = merge_repos(definition.repos, scanning.repos)
        encode_spec(self.job, spec)

    def get_repos(self) -> LookupResult:
        """
        Merged repositories of every target.

        Targets whose stored definition is missing are skipped.
        """
        result = LookupResult()
        for scanning in self._decode().scannings:
            try:
                definition = self._find_definition(scanning.name)
            except JobsmithError as e:
                message = f"find scanning {scanning.name} error: {e}"
                logger.error(message)
                result.warnings.append(message)
                continue
            result.values.extend(merge_repos(definition.repos, scanning.repos))
        return result

    def merge_args(self, args: Job) -> None:
        """
        Merge a re-run override's repositories into matching targets.

        No-op when args names a different job or kind.
        """
        if args.name != self.job.name or args.kind != self.job.kind:
            return

        spec = self._decode()
        args_spec = decode_spec(args, ScanningJobSpec)
        for scanning in spec.scannings:
            override = args_spec.get_scanning(scanning.name)
            if override is not None:
                scanning.repos = merge_repos(scanning.repos, override.repos)
        encode_spec(self.job, spec)

    def merge_webhook_repo(self, repo: Repository) -> None:
        """Merge an event-supplied repository into every target."""
        spec = self._decode()
        for scanning in spec.scannings:
            scanning.repos = merge_repos(scanning.repos, [repo])
        encode_spec(self.job, spec)

    def get_outputs(self) -> LookupResult:
        """
        Output references of every target.

        Targets whose stored definition is missing are skipped.
        """
        result = LookupResult()
        for scanning in self._decode().scannings:
            try:
                definition = self._find_definition(scanning.name)
            except JobsmithError as e:
                message = f"find scanning {scanning.name} error: {e}"
                logger.error(message)
                result.warnings.append(message)
                continue
            key = job_key(self.job.name, scanning.name)
            result.values.extend(output_keys(key, definition.outputs))
        return result

    def to_jobs(self, task_id: int) -> list[JobTask]:
        """
        Compile one freestyle task per scanning target.

        Raises:
            DecodeError: If the job payload is malformed
            EmptyJobError: If no scanning target is declared
            CompileError: If a definition, image, registry list or sonar
                integration cannot be resolved
        """
        spec = self._decode()
        if not spec.scannings:
            raise EmptyJobError(f"scanning job {self.job.name}: scanning list is empty")

        try:
            registries = tuple(self.deps.store.list_registries())
        except JobsmithError as e:
            raise CompileError(f"list registries error: {e}") from e

        tasks = [self._compile_target(scanning, registries, task_id) for scanning in spec.scannings]
        encode_spec(self.job, spec)
        return tasks

    def _compile_target(self, scanning: ScanningTarget, registries: tuple, task_id: int) -> JobTask:
        try:
            definition = self._find_definition(scanning.name)
        except JobsmithError as e:
            raise CompileError(f"find scanning {scanning.name} error: {e}") from e
        try:
            image = self.deps.store.find_basic_image(definition.image_id)
        except JobsmithError as e:
            raise CompileError(f"find basic image {definition.image_id} error: {e}") from e

        advanced = definition.advanced_setting
        timeout = advanced.timeout if advanced and advanced.timeout else self.deps.config.default_timeout
        task_name = job_name_format(f"{scanning.name}-{self.job.name}")
        repos = merge_repos(definition.repos, scanning.repos)

        envs = workflow_variables(self.workflow, task_id, self.deps.config)
        envs.extend(repo_variables(repos))
        envs.append(KeyVal("SCANNING_NAME", scanning.name))
        envs.extend(definition.envs)
        if repos:
            envs.append(KeyVal("BRANCH", repos[0].branch))

        steps = [
            StepTask(
                name=f"{scanning.name}-tool-install",
                job_name=task_name,
                step_type=StepKind.TOOLS,
                spec=ToolInstallStepSpec(installs=tuple(definition.installs)),
            ),
            StepTask(
                name=f"{scanning.name}-git",
                job_name=task_name,
                step_type=StepKind.GIT,
                spec=GitStepSpec(repos=tuple(render_repos(repos, envs))),
            ),
            StepTask(
                name=f"{scanning.name}-debug-before",
                job_name=task_name,
                step_type=StepKind.DEBUG_BEFORE,
            ),
        ]

        script = split_script(definition.script) + output_script(
            definition.outputs, self.deps.config.job_output_dir
        )
        if definition.scanner_type == ScannerType.SONAR:
            steps.extend(self._sonar_steps(scanning, definition, repos, envs, script, task_name))
        else:
            steps.append(StepTask(
                name=f"{scanning.name}-shell",
                job_name=task_name,
                step_type=StepKind.SHELL,
                spec=ShellStepSpec(scripts=tuple(script)),
            ))

        steps.append(StepTask(
            name=f"{scanning.name}-debug-after",
            job_name=task_name,
            step_type=StepKind.DEBUG_AFTER,
        ))

        properties = JobProperties(
            timeout=timeout,
            resource_request=advanced.res_req if advanced else "",
            res_req_spec=dict(advanced.res_req_spec) if advanced else {},
            cluster_id=advanced.cluster_id if advanced else "",
            strategy_id=advanced.strategy_id if advanced else "",
            build_os=self._build_image(image),
            image_from=ImageFrom.CUSTOM.value,
            envs=tuple(envs),
            registries=registries,
            share_storage_details=share_storage_details(
                self.workflow, scanning.share_storage_info, task_id
            ),
        )

        logger.debug(f"Compiled scanning {scanning.name} of job {self.job.name} with {len(steps)} steps")
        return JobTask(
            name=task_name,
            key=job_key(self.job.name, scanning.name),
            job_type=self.kind.value,
            job_info={
                JOB_NAME_KEY: self.job.name,
                "scanning_name": scanning.name,
            },
            spec=FreestyleTaskSpec(properties=properties, steps=tuple(steps)),
            timeout=timeout,
            outputs=tuple(definition.outputs),
        )

    def _build_image(self, image: BasicImage) -> str:
        if image.image_from == ImageFrom.KODEROVER:
            return self.deps.config.reaper_image.replace("${BuildOS}", image.value)
        return image.value

    def _sonar_steps(
        self,
        scanning: ScanningTarget,
        definition: ScanningDefinition,
        repos: list[Repository],
        envs: list[KeyVal],
        script: list[str],
        task_name: str,
    ) -> list[StepTask]:
        """
        Steps of a sonarQube scan. Appends the sonar entries to envs.

        Raises:
            CompileError: If the sonar integration cannot be found
        """
        steps = [StepTask(
            name=f"{scanning.name}-shell",
            job_name=task_name,
            step_type=StepKind.SHELL,
            spec=ShellStepSpec(scripts=tuple(script), skip_prepare=True),
        )]

        try:
            sonar = self.deps.store.find_sonar_integration(definition.sonar_id)
        except JobsmithError as e:
            raise CompileError(
                f"failed to get sonar integration {definition.sonar_id} for scanning {scanning.name}: {e}"
            ) from e

        project_key = get_project_key(definition.parameter)
        result_url = self._resolve_result_url(sonar.server_address, project_key)

        envs.append(KeyVal("SONAR_LINK", result_url))
        envs.append(KeyVal("SONAR_TOKEN", sonar.token, is_credential=True))
        envs.append(KeyVal("SONAR_URL", sonar.server_address))

        directory, branch = first_repo_location(repos)

        if definition.enable_scanner:
            properties = f"sonar.login={sonar.token}\nsonar.host.url={sonar.server_address}\n{definition.parameter}"
            properties = properties.replace("$branch", branch)
            sonar_script = SONAR_SCRIPT_TEMPLATE.format(directory=directory, properties=properties)
            steps.append(StepTask(
                name=f"{scanning.name}-sonar-shell",
                job_name=task_name,
                step_type=StepKind.SHELL,
                spec=ShellStepSpec(scripts=tuple(split_script(sonar_script)), skip_prepare=True),
            ))

        if definition.check_quality_gate:
            steps.append(StepTask(
                name=f"{scanning.name}-sonar-check",
                job_name=task_name,
                step_type=StepKind.SONAR_CHECK,
                spec=SonarCheckStepSpec(
                    parameter=definition.parameter,
                    check_dir=directory,
                    sonar_token=sonar.token,
                    sonar_server=sonar.server_address,
                ),
            ))
        return steps

    def _resolve_result_url(self, server_address: str, project_key: str) -> str:
        """Dashboard link for the scan; "" when it cannot be resolved."""
        try:
            return self.deps.sonar.resolve_result_url(server_address, project_key)
        except JobsmithError as e:
            logger.error(f"failed to get sonar address with project key {project_key!r}: {e}")
            return ""

    def lint_job(self) -> None:
        """
        Check that every scanning definition (and its sonar integration) exists.

        Raises:
            DecodeError: If the job payload is malformed
            ValidationError: On the first unresolved reference
        """
        spec = self._decode()
        for scanning in spec.scannings:
            try:
                definition = self._find_definition(scanning.name)
            except JobsmithError as e:
                raise ValidationError(
                    f"scanning job {self.job.name}: scanning {scanning.name!r} not found: {e}",
                    reference=scanning.name,
                ) from e
            if definition.scanner_type != ScannerType.SONAR:
                continue
            try:
                self.deps.store.find_sonar_integration(definition.sonar_id)
            except JobsmithError as e:
                raise ValidationError(
                    f"scanning job {self.job.name}: sonar integration {definition.sonar_id!r} "
                    f"of scanning {scanning.name!r} not found: {e}",
                    reference=definition.sonar_id,
                ) from e
