"""
Jenkins client - IO boundary for reading a Jenkins job's parameter declarations.

Only one call is needed by the compilation core: fetch the parameters a
named job currently declares, with their default values, types and
choices. The HTTP implementation reads the job's JSON API:

    GET {url}/job/<folder>/job/<name>/api/json?tree=property[parameterDefinitions[...]]

Error classification:
- httpx transport errors and timeouts -> UpstreamLookupError (caller may retry)
- Non-2xx responses -> UpstreamLookupError naming the status
- Malformed response bodies -> UpstreamLookupError
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, runtime_checkable
from urllib.parse import quote

import httpx

from jobsmith.errors import UpstreamLookupError
from jobsmith.schemas import JenkinsIntegration

logger = logging.getLogger(__name__)

PARAMETERS_TREE = (
    "property[parameterDefinitions[name,type,choices,"
    "defaultParameterValue[value]]]"
)


@dataclass(frozen=True)
class JenkinsParameterDefinition:
    """
    A parameter as currently declared on the Jenkins server.

    Attributes:
        name: Parameter name (identity key)
        type: Jenkins definition class, e.g. "StringParameterDefinition"
        default_value: Default value, as returned by the server
        choices: Allowed values for choice parameters
    """
    name: str
    type: str = ""
    default_value: Any = None
    choices: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "JenkinsParameterDefinition":
        """Build from one entry of the API's `parameterDefinitions` list."""
        default = data.get("defaultParameterValue") or {}
        return cls(
            name=data["name"],
            type=data.get("type", ""),
            default_value=default.get("value"),
            choices=tuple(str(c) for c in data.get("choices") or []),
        )


@runtime_checkable
class JenkinsClient(Protocol):
    """Protocol for Jenkins parameter lookups."""

    def get_job_parameters(self, job_name: str) -> list[JenkinsParameterDefinition]:
        """
        Fetch the parameters job_name currently declares.

        Raises:
            UpstreamLookupError: If the server is unreachable or the job is unknown
        """
        ...


JenkinsClientFactory = Callable[[JenkinsIntegration], JenkinsClient]


def job_path(job_name: str) -> str:
    """
    URL path of a (possibly foldered) job.

    "team/app" -> "/job/team/job/app"
    """
    parts = [p for p in job_name.split("/") if p]
    return "".join(f"/job/{quote(p, safe='')}" for p in parts)


def parse_parameters(payload: dict[str, Any]) -> list[JenkinsParameterDefinition]:
    """
    Extract parameter definitions from a job API response.

    Definitions are spread across the job's `property` entries; entries
    without `parameterDefinitions` are skipped.
    """
    definitions: list[JenkinsParameterDefinition] = []
    for prop in payload.get("property") or []:
        for definition in (prop or {}).get("parameterDefinitions") or []:
            definitions.append(JenkinsParameterDefinition.from_api(definition))
    return definitions


class HttpJenkinsClient:
    """
    JenkinsClient backed by httpx.

    The client carries no timeout of its own unless one is passed; callers
    impose their own deadline.
    """

    def __init__(
        self,
        url: str,
        username: str = "",
        password: str = "",
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            url: Jenkins base URL
            username: Basic-auth user
            password: Basic-auth password or API token
            timeout: Request timeout in seconds (None = no timeout)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = url.rstrip("/")
        auth = httpx.BasicAuth(username, password) if username else None
        self._client = httpx.Client(auth=auth, timeout=timeout, transport=transport)

    def get_job_parameters(self, job_name: str) -> list[JenkinsParameterDefinition]:
        url = f"{self.base_url}{job_path(job_name)}/api/json"
        try:
            response = self._client.get(url, params={"tree": PARAMETERS_TREE})
        except httpx.HTTPError as e:
            raise UpstreamLookupError(f"get jenkins job {job_name} failed: {e}") from e

        if response.status_code == 404:
            raise UpstreamLookupError(f"jenkins job {job_name} not found")
        if response.is_error:
            raise UpstreamLookupError(
                f"get jenkins job {job_name} failed: HTTP {response.status_code}"
            )

        try:
            payload = response.json()
            return parse_parameters(payload)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise UpstreamLookupError(
                f"invalid response for jenkins job {job_name}: {e}"
            ) from e

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpJenkinsClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def make_jenkins_client(
    integration: JenkinsIntegration,
    timeout: Optional[float] = None,
) -> HttpJenkinsClient:
    """Default JenkinsClientFactory: an HttpJenkinsClient for the integration."""
    logger.debug(f"Creating Jenkins client for {integration.url}")
    return HttpJenkinsClient(
        integration.url,
        username=integration.username,
        password=integration.password,
        timeout=timeout,
    )
