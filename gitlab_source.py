#!/usr/bin/env python3
"""GitLab API wrapper for discovering and archiving the source projects."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import gitlab
import requests

from config import SourceConfig
from errors import ArchiveFailed, ProjectNotFound, SourceApiError
from logging_utils import Logger
from utils import RateLimiter, StepResult

REQUEST_TIMEOUT_S = 30


class GitLabSource:
    """Source host access.

    Discovery and authentication go through python-gitlab; the archive
    workflow talks to the REST endpoints directly with ``requests``.
    """

    def __init__(self, config: SourceConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.api: Optional[gitlab.Gitlab] = None
        self.session = session or requests.Session()
        self.session.headers.update({"PRIVATE-TOKEN": config.api_token})
        self.rate_limiter = RateLimiter(
            max_requests_per_minute=30
        )  # Conservative GitLab rate limit

    def connect(self) -> str:
        """Authenticate with python-gitlab and return the token's username."""
        url = f"https://{self.config.host}"
        Logger.info(f"init gitlab API: {url}")
        try:
            self.api = gitlab.Gitlab(url=url, private_token=self.config.api_token)
            self.api.auth()
        except gitlab.exceptions.GitlabAuthenticationError as e:
            Logger.security_event("GITLAB_AUTH_FAILED", f"authentication error: {e}")
            raise SourceApiError(f"authentication error (gitlab): {e}") from e
        except (gitlab.exceptions.GitlabError, requests.RequestException) as e:
            raise SourceApiError(f"failed to initialize gitlab API: {e}") from e

        user = self.api.user
        username = getattr(user, "username", "") if user is not None else ""
        Logger.debug(f"gitlab user: {username}")
        return username

    def list_projects(self, include_forks: bool, include_archived: bool) -> List[Any]:
        """Projects owned by the configured source user, in API order."""
        if self.api is None:
            self.connect()
        assert self.api is not None

        Logger.info(f"discovering projects of: {self.config.user}")
        filters: Dict[str, Any] = {"owned": True, "get_all": True}
        if not include_archived:
            filters["archived"] = False
        try:
            self.rate_limiter.wait_if_needed("GitLab API")
            users = self.api.users.list(username=self.config.user)
            if not users:
                raise SourceApiError(f"gitlab user not found: {self.config.user}")
            self.rate_limiter.wait_if_needed("GitLab API")
            owner = self.api.users.get(users[0].id, lazy=True)
            found = owner.projects.list(**filters)
        except gitlab.exceptions.GitlabError as e:
            raise SourceApiError(
                f"failed to list projects of '{self.config.user}': {e}"
            ) from e

        projects: List[Any] = []
        for project in found:
            path = getattr(project, "path", "")
            if not include_forks and getattr(project, "forked_from_project", None):
                Logger.warn(f"skipping fork: {path}")
                continue
            projects.append(project)
            Logger.debug(f"found: {path}")

        Logger.info(f"found {len(projects)} projects")
        return projects

    # REST helpers used by the archiver

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.config.api_url}{path}"
        self.rate_limiter.wait_if_needed("GitLab API")
        try:
            return self.session.request(method, url, timeout=REQUEST_TIMEOUT_S, **kwargs)
        except requests.RequestException as e:
            raise SourceApiError(f"failed to contact gitlab api: {e}") from e

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def current_username(self) -> Optional[str]:
        response = self._request("GET", "/user")
        if response.status_code != 200:
            Logger.debug(f"GET /user returned {response.status_code}")
            return None
        return self._json(response).get("username") or None

    def resolve_project_id(self, name: str) -> int:
        encoded_path = quote(f"{self.config.user}/{name}", safe="")
        response = self._request("GET", f"/projects/{encoded_path}")
        project_id = self._json(response).get("id") if response.status_code == 200 else None
        if not project_id:
            raise ProjectNotFound(name)
        return int(project_id)

    def get_project(self, project_id: int) -> Dict[str, Any]:
        response = self._request("GET", f"/projects/{project_id}")
        if response.status_code != 200:
            raise SourceApiError(
                f"failed to fetch project {project_id}: HTTP {response.status_code}"
            )
        return self._json(response)

    def archive(self, name: str, project_id: int) -> Dict[str, Any]:
        response = self._request("POST", f"/projects/{project_id}/archive")
        data = self._json(response)
        if data.get("archived") is not True:
            detail = data.get("message") or data.get("error") or f"HTTP {response.status_code}"
            raise ArchiveFailed(name, str(detail))
        return data

    def update_description(self, project_id: int, description: str) -> StepResult:
        response = self._request(
            "PUT", f"/projects/{project_id}", json={"description": description}
        )
        if response.status_code == 200 and self._json(response).get("id"):
            return StepResult.done()
        return StepResult.failed(f"HTTP {response.status_code}")
