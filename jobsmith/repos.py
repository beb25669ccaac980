"""
Repository merge and rendering.

merge_repos is the one merge used by every repository-bearing lifecycle
operation: preset (stored defaults + user repos), merge_args (current +
re-run override), merge_webhook_repo (current + event repo) and get_repos.

Merge rules:
- Entries match by Repository.key (source/namespace/name)
- Base order is preserved; override-only entries are appended in order
- On a match, revision fields (branch, tag, commit_id, pr, prs) are taken
  together from the override when it pins any of them; other fields are
  taken from the override when it sets them (non-empty, non-zero, True);
  an override therefore cannot switch submodules from True back to False
- Inputs are never mutated
"""

import dataclasses
import re
from string import Template
from typing import Iterable, Sequence

from jobsmith.schemas import KeyVal, Repository
from jobsmith.schemas.repository import REVISION_FIELDS

DEFAULT_REMOTE_NAME = "origin"


def _merge_one(base: Repository, override: Repository) -> Repository:
    """Apply override's values onto a copy of base."""
    changes = {}
    if override.pins_revision():
        for name in REVISION_FIELDS:
            changes[name] = getattr(override, name)
    for f in dataclasses.fields(Repository):
        if f.name in REVISION_FIELDS:
            continue
        value = getattr(override, f.name)
        if value:
            changes[f.name] = value
    changes["prs"] = list(changes.get("prs", base.prs))
    return dataclasses.replace(base, **changes)


def merge_repos(
    base: Sequence[Repository],
    override: Sequence[Repository],
) -> list[Repository]:
    """
    Merge two ordered repository lists by identity key.

    Args:
        base: Authoritative ordering (e.g. stored defaults)
        override: Entries whose values take precedence on a match. Falsy
            non-revision values ("", 0, False) count as unset and keep
            the base value.

    Returns:
        A new merged list; inputs are not modified
    """
    overrides: dict[str, Repository] = {}
    for repo in override:
        overrides[repo.key] = repo

    merged: list[Repository] = []
    seen: set[str] = set()
    for repo in base:
        match = overrides.get(repo.key)
        merged.append(_merge_one(repo, match) if match else dataclasses.replace(repo, prs=list(repo.prs)))
        seen.add(repo.key)

    for repo in override:
        if repo.key not in seen:
            merged.append(dataclasses.replace(repo, prs=list(repo.prs)))
            seen.add(repo.key)

    return merged


def render_env(value: str, envs: Iterable[KeyVal]) -> str:
    """
    Substitute $VAR and ${VAR} in value from envs (last entry wins).

    Unknown variables are left as written.
    """
    if "$" not in value:
        return value
    mapping = {env.key: env.value for env in envs}
    return Template(value).safe_substitute(mapping)


def render_repos(repos: Sequence[Repository], envs: Sequence[KeyVal]) -> list[Repository]:
    """
    Render repositories for the checkout step.

    Checkout paths are env-substituted and an empty remote name defaults
    to "origin".
    """
    rendered = []
    for repo in repos:
        rendered.append(dataclasses.replace(
            repo,
            checkout_path=render_env(repo.checkout_path, envs),
            remote_name=repo.remote_name or DEFAULT_REMOTE_NAME,
            prs=list(repo.prs),
        ))
    return rendered


def _env_name(repo_name: str) -> str:
    """Repo name as an environment-variable prefix."""
    return re.sub(r"[^A-Za-z0-9_]", "_", repo_name)


def repo_variables(repos: Sequence[Repository]) -> list[KeyVal]:
    """
    Environment entries derived from repositories, one set per repository.

    For repository i named `my-svc`:
        REPONAME_i=my-svc, REPO_i=my_svc, my_svc_BRANCH, my_svc_TAG,
        my_svc_PR, my_svc_COMMIT_ID, my_svc_ORG (each only when set;
        my_svc_PR lists prs when set, else pr)
    """
    envs: list[KeyVal] = []
    for index, repo in enumerate(repos):
        name = _env_name(repo.repo_name)
        envs.append(KeyVal(f"REPONAME_{index}", repo.repo_name))
        envs.append(KeyVal(f"REPO_{index}", name))
        if repo.branch:
            envs.append(KeyVal(f"{name}_BRANCH", repo.branch))
        if repo.tag:
            envs.append(KeyVal(f"{name}_TAG", repo.tag))
        if repo.prs:
            envs.append(KeyVal(f"{name}_PR", ",".join(str(pr) for pr in repo.prs)))
        elif repo.pr > 0:
            envs.append(KeyVal(f"{name}_PR", str(repo.pr)))
        if repo.commit_id:
            envs.append(KeyVal(f"{name}_COMMIT_ID", repo.commit_id))
        if repo.namespace:
            envs.append(KeyVal(f"{name}_ORG", repo.namespace))
    return envs


def first_repo_location(repos: Sequence[Repository]) -> tuple[str, str]:
    """
    Directory and branch of the first repository.

    Returns:
        (checkout_path or repo_name, branch), or ("", "") for no repos
    """
    if not repos:
        return "", ""
    first = repos[0]
    return first.checkout_path or first.repo_name, first.branch

