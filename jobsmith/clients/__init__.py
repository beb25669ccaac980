"""
jobsmith.clients - External system clients used during preset and compilation.

- jenkins: parameter declarations of Jenkins jobs (httpx)
- sonar: SonarQube project keys and dashboard links
"""

from .jenkins import (
    JenkinsClient,
    JenkinsClientFactory,
    JenkinsParameterDefinition,
    HttpJenkinsClient,
    make_jenkins_client,
)
from .sonar import (
    SonarAccessor,
    DashboardSonarAccessor,
    get_project_key,
)

__all__ = [
    "JenkinsClient",
    "JenkinsClientFactory",
    "JenkinsParameterDefinition",
    "HttpJenkinsClient",
    "make_jenkins_client",
    "SonarAccessor",
    "DashboardSonarAccessor",
    "get_project_key",
]
