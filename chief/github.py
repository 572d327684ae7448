"""A small client for the GitHub REST API."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import requests

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
API_VERSION = "2022-11-28"

T = TypeVar("T")


class GitHubError(RuntimeError):
    """A GitHub API request failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _number(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    return 0 if value is None else int(value)


def _truth(data: dict[str, Any], key: str) -> bool:
    return bool(data.get(key) or False)


def _mapping(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _items(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key)
    return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


@dataclass
class GitHubUser:
    """The few fields of a GitHub user that are used."""

    login: str = ""
    id: int = 0
    html_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GitHubUser:
        return cls(login=_text(data, "login"), id=_number(data, "id"), html_url=_text(data, "html_url"))


@dataclass
class BranchRef:
    """The head or base branch of a pull request."""

    ref: str = ""
    sha: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BranchRef:
        return cls(ref=_text(data, "ref"), sha=_text(data, "sha"))


@dataclass
class Label:
    """An issue label."""

    name: str = ""
    color: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Label:
        return cls(name=_text(data, "name"), color=_text(data, "color"))


@dataclass
class PullRequestRequest:
    """Payload for creating a pull request."""

    title: str
    head: str
    base: str
    body: str = ""
    draft: bool = False
    maintainer_can_modify: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": self.title, "head": self.head, "base": self.base}
        if self.body:
            payload["body"] = self.body
        if self.draft:
            payload["draft"] = True
        if self.maintainer_can_modify:
            payload["maintainer_can_modify"] = True
        return payload


@dataclass
class PullRequestResponse:
    """A pull request as returned by GitHub."""

    id: int = 0
    number: int = 0
    title: str = ""
    body: str = ""
    state: str = ""
    draft: bool = False
    html_url: str = ""
    head: BranchRef = field(default_factory=BranchRef)
    base: BranchRef = field(default_factory=BranchRef)
    user: GitHubUser = field(default_factory=GitHubUser)
    created_at: str = ""
    updated_at: str = ""
    merged_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PullRequestResponse:
        return cls(
            id=_number(data, "id"),
            number=_number(data, "number"),
            title=_text(data, "title"),
            body=_text(data, "body"),
            state=_text(data, "state"),
            draft=_truth(data, "draft"),
            html_url=_text(data, "html_url"),
            head=BranchRef.from_dict(_mapping(data, "head")),
            base=BranchRef.from_dict(_mapping(data, "base")),
            user=GitHubUser.from_dict(_mapping(data, "user")),
            created_at=_text(data, "created_at"),
            updated_at=_text(data, "updated_at"),
            merged_at=_text(data, "merged_at"),
        )


@dataclass
class IssueRequest:
    """Payload for creating an issue."""

    title: str
    body: str = ""
    labels: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)
    milestone: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": self.title}
        if self.body:
            payload["body"] = self.body
        if self.labels:
            payload["labels"] = list(self.labels)
        if self.assignees:
            payload["assignees"] = list(self.assignees)
        if self.milestone is not None:
            payload["milestone"] = self.milestone
        return payload


@dataclass
class IssueResponse:
    """An issue as returned by GitHub."""

    id: int = 0
    number: int = 0
    title: str = ""
    body: str = ""
    state: str = ""
    html_url: str = ""
    user: GitHubUser = field(default_factory=GitHubUser)
    labels: list[Label] = field(default_factory=list)
    assignees: list[GitHubUser] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    closed_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IssueResponse:
        return cls(
            id=_number(data, "id"),
            number=_number(data, "number"),
            title=_text(data, "title"),
            body=_text(data, "body"),
            state=_text(data, "state"),
            html_url=_text(data, "html_url"),
            user=GitHubUser.from_dict(_mapping(data, "user")),
            labels=[Label.from_dict(item) for item in _items(data, "labels")],
            assignees=[GitHubUser.from_dict(item) for item in _items(data, "assignees")],
            created_at=_text(data, "created_at"),
            updated_at=_text(data, "updated_at"),
            closed_at=_text(data, "closed_at"),
        )


@dataclass
class RepositoryResponse:
    """A repository as returned by GitHub."""

    id: int = 0
    name: str = ""
    full_name: str = ""
    owner: GitHubUser = field(default_factory=GitHubUser)
    private: bool = False
    html_url: str = ""
    clone_url: str = ""
    ssh_url: str = ""
    description: str = ""
    fork: bool = False
    created_at: str = ""
    updated_at: str = ""
    language: str = ""
    default_branch: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepositoryResponse:
        return cls(
            id=_number(data, "id"),
            name=_text(data, "name"),
            full_name=_text(data, "full_name"),
            owner=GitHubUser.from_dict(_mapping(data, "owner")),
            private=_truth(data, "private"),
            html_url=_text(data, "html_url"),
            clone_url=_text(data, "clone_url"),
            ssh_url=_text(data, "ssh_url"),
            description=_text(data, "description"),
            fork=_truth(data, "fork"),
            created_at=_text(data, "created_at"),
            updated_at=_text(data, "updated_at"),
            language=_text(data, "language"),
            default_branch=_text(data, "default_branch"),
        )


class GitHubClient:
    """Calls the GitHub REST API with an optional bearer token."""

    def __init__(self, token: str) -> None:
        self.base_url = DEFAULT_BASE_URL
        self.token = token
        self.timeout = DEFAULT_TIMEOUT
        self.session = requests.Session()

    def _request(self, method: str, endpoint: str, body: dict[str, Any] | None = None) -> Any:
        """Send a request and return the decoded JSON body, or None when it is empty."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "Content-Type": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        data = json.dumps(body).encode("utf-8") if body is not None else None

        try:
            response = self.session.request(
                method, self.base_url + endpoint, data=data, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise GitHubError(f"do request: {exc}") from exc

        raw = response.content
        if response.status_code >= 400:
            message = ""
            try:
                decoded = json.loads(raw)
            except ValueError:
                decoded = None
            if isinstance(decoded, dict) and decoded.get("message"):
                message = str(decoded["message"])
            else:
                message = raw.decode("utf-8", errors="replace")
            raise GitHubError(
                f"github api error {response.status_code}: {message}", response.status_code
            )

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise GitHubError(f"unmarshal response: {exc}") from exc

    def _one(self, decoded: Any, build: Callable[[dict[str, Any]], T]) -> T:
        if decoded is None:
            return build({})
        if not isinstance(decoded, dict):
            raise GitHubError("unmarshal response: expected a JSON object")
        return build(decoded)

    def _many(self, decoded: Any, build: Callable[[dict[str, Any]], T]) -> list[T]:
        if decoded is None:
            return []
        if not isinstance(decoded, list):
            raise GitHubError("unmarshal response: expected a JSON array")
        return [build(item) for item in decoded if isinstance(item, dict)]

    def create_pull_request(
        self, owner: str, repo: str, request: PullRequestRequest
    ) -> PullRequestResponse:
        """Open a pull request in ``owner/repo``."""
        decoded = self._request("POST", f"/repos/{owner}/{repo}/pulls", request.to_dict())
        return self._one(decoded, PullRequestResponse.from_dict)

    def create_issue(self, owner: str, repo: str, request: IssueRequest) -> IssueResponse:
        """Open an issue in ``owner/repo``."""
        decoded = self._request("POST", f"/repos/{owner}/{repo}/issues", request.to_dict())
        return self._one(decoded, IssueResponse.from_dict)

    def list_issues(self, owner: str, repo: str, state: str = "") -> list[IssueResponse]:
        """List up to 100 issues, optionally filtered by state."""
        endpoint = f"/repos/{owner}/{repo}/issues?per_page=100"
        if state:
            endpoint += f"&state={state}"
        return self._many(self._request("GET", endpoint), IssueResponse.from_dict)

    def get_issue(self, owner: str, repo: str, number: int) -> IssueResponse:
        """Fetch one issue by number."""
        decoded = self._request("GET", f"/repos/{owner}/{repo}/issues/{number}")
        return self._one(decoded, IssueResponse.from_dict)

    def list_repos(self) -> list[RepositoryResponse]:
        """List up to 100 repositories of the authenticated user, latest updated first."""
        decoded = self._request("GET", "/user/repos?per_page=100&sort=updated")
        return self._many(decoded, RepositoryResponse.from_dict)

    def list_pull_requests(
        self, owner: str, repo: str, state: str = ""
    ) -> list[PullRequestResponse]:
        """List up to 100 pull requests, optionally filtered by state."""
        endpoint = f"/repos/{owner}/{repo}/pulls?per_page=100"
        if state:
            endpoint += f"&state={state}"
        return self._many(self._request("GET", endpoint), PullRequestResponse.from_dict)

    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestResponse:
        """Fetch one pull request by number."""
        decoded = self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")
        return self._one(decoded, PullRequestResponse.from_dict)