"""
SonarQube accessor - result links and project keys.

The scanning variant exposes a link to the scan's dashboard as an
environment entry. The link is derived from the server address and the
project key declared in the stored sonar-project.properties body.
"""

import re
from typing import Protocol, runtime_checkable

import httpx

from jobsmith.errors import UpstreamLookupError

PROJECT_KEY_PATTERN = re.compile(r"^\s*sonar\.projectKey\s*=\s*(.*?)\s*$", re.MULTILINE)


def get_project_key(parameter: str) -> str:
    """
    Read `sonar.projectKey` from a sonar-project.properties body.

    Returns:
        The project key, or "" when not declared
    """
    match = PROJECT_KEY_PATTERN.search(parameter or "")
    return match.group(1) if match else ""


@runtime_checkable
class SonarAccessor(Protocol):
    """Protocol for resolving scan result links."""

    def resolve_result_url(self, server_address: str, project_key: str) -> str:
        """
        Public URL of the project's dashboard.

        Raises:
            UpstreamLookupError: If the address cannot be used
        """
        ...


class DashboardSonarAccessor:
    """Builds `<server>/dashboard?id=<project_key>` links."""

    def resolve_result_url(self, server_address: str, project_key: str) -> str:
        try:
            url = httpx.URL(server_address)
        except httpx.InvalidURL as e:
            raise UpstreamLookupError(f"invalid sonar address {server_address!r}: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise UpstreamLookupError(f"invalid sonar address {server_address!r}")

        path = url.path.rstrip("/") + "/dashboard"
        return str(url.copy_with(path=path).copy_set_param("id", project_key))
