import json

import pytest
import requests
import responses

from chief.github import (
    GitHubClient,
    GitHubError,
    IssueRequest,
    PullRequestRequest,
)

API = "https://api.github.com"


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def client():
    return GitHubClient("token")


def test_create_pull_request_sends_payload_and_headers(mocked, client):
    mocked.add(
        responses.POST,
        f"{API}/repos/octo/demo/pulls",
        json={
            "id": 11,
            "number": 7,
            "title": "Add feature",
            "state": "open",
            "html_url": "https://example.com/pr/7",
            "head": {"ref": "feature", "sha": "abc"},
            "base": {"ref": "main", "sha": "def"},
            "user": {"login": "octo", "id": 3},
        },
        status=201,
    )
    request = PullRequestRequest(title="Add feature", head="feature", base="main", body="Details")
    result = client.create_pull_request("octo", "demo", request)

    sent = mocked.calls[0].request
    assert json.loads(sent.body) == {
        "title": "Add feature",
        "head": "feature",
        "base": "main",
        "body": "Details",
    }
    assert sent.headers["Authorization"] == "Bearer token"
    assert sent.headers["Accept"] == "application/vnd.github+json"
    assert sent.headers["X-GitHub-Api-Version"] == "2022-11-28"
    assert result.number == 7
    assert result.head.ref == "feature"
    assert result.base.sha == "def"
    assert result.user.login == "octo"


def test_pull_request_payload_omits_empty_fields():
    request = PullRequestRequest(title="T", head="h", base="b")
    assert request.to_dict() == {"title": "T", "head": "h", "base": "b"}
    flagged = PullRequestRequest(title="T", head="h", base="b", draft=True, maintainer_can_modify=True)
    assert flagged.to_dict()["draft"] is True
    assert flagged.to_dict()["maintainer_can_modify"] is True


def test_issue_payload_omits_empty_fields():
    assert IssueRequest(title="Bug").to_dict() == {"title": "Bug"}
    full = IssueRequest(title="Bug", body="b", labels=["x"], assignees=["y"], milestone=0)
    assert full.to_dict() == {
        "title": "Bug",
        "body": "b",
        "labels": ["x"],
        "assignees": ["y"],
        "milestone": 0,
    }


def test_no_authorization_header_without_token(mocked):
    mocked.add(responses.GET, f"{API}/user/repos", json=[])
    anonymous = GitHubClient("")
    assert anonymous.list_repos() == []
    assert "Authorization" not in mocked.calls[0].request.headers


def test_create_issue_parses_labels_and_assignees(mocked, client):
    mocked.add(
        responses.POST,
        f"{API}/repos/octo/demo/issues",
        json={
            "number": 5,
            "title": "Bug",
            "labels": [{"name": "bug", "color": "red"}],
            "assignees": [{"login": "alice"}],
            "closed_at": None,
        },
        status=201,
    )
    issue = client.create_issue("octo", "demo", IssueRequest(title="Bug", labels=["bug"]))
    assert json.loads(mocked.calls[0].request.body) == {"title": "Bug", "labels": ["bug"]}
    assert issue.number == 5
    assert [label.name for label in issue.labels] == ["bug"]
    assert issue.assignees[0].login == "alice"
    assert issue.closed_at == ""


def test_list_issues_with_state(mocked, client):
    mocked.add(responses.GET, f"{API}/repos/octo/demo/issues", json=[{"number": 1}, {"number": 2}])
    issues = client.list_issues("octo", "demo", "closed")
    assert [issue.number for issue in issues] == [1, 2]
    assert mocked.calls[0].request.url == f"{API}/repos/octo/demo/issues?per_page=100&state=closed"


def test_list_issues_without_state(mocked, client):
    mocked.add(responses.GET, f"{API}/repos/octo/demo/issues", json=[])
    assert client.list_issues("octo", "demo", "") == []
    assert mocked.calls[0].request.url == f"{API}/repos/octo/demo/issues?per_page=100"


def test_list_pull_requests_query(mocked, client):
    mocked.add(responses.GET, f"{API}/repos/octo/demo/pulls", json=[{"number": 9, "draft": True}])
    pulls = client.list_pull_requests("octo", "demo", "open")
    assert pulls[0].number == 9
    assert pulls[0].draft is True
    assert mocked.calls[0].request.url == f"{API}/repos/octo/demo/pulls?per_page=100&state=open"


def test_get_issue_and_pull_request_paths(mocked, client):
    mocked.add(responses.GET, f"{API}/repos/octo/demo/issues/42", json={"number": 42})
    mocked.add(responses.GET, f"{API}/repos/octo/demo/pulls/43", json={"number": 43})
    assert client.get_issue("octo", "demo", 42).number == 42
    assert client.get_pull_request("octo", "demo", 43).number == 43


def test_list_repos_parses_fields(mocked, client):
    mocked.add(
        responses.GET,
        f"{API}/user/repos",
        json=[
            {
                "name": "demo",
                "full_name": "octo/demo",
                "owner": {"login": "octo"},
                "private": True,
                "default_branch": "main",
                "description": None,
            }
        ],
    )
    repos = client.list_repos()
    assert mocked.calls[0].request.url == f"{API}/user/repos?per_page=100&sort=updated"
    assert repos[0].full_name == "octo/demo"
    assert repos[0].owner.login == "octo"
    assert repos[0].private is True
    assert repos[0].default_branch == "main"
    assert repos[0].description == ""


def test_error_with_message(mocked, client):
    mocked.add(responses.GET, f"{API}/repos/octo/demo/issues/1", json={"message": "Not Found"}, status=404)
    with pytest.raises(GitHubError) as info:
        client.get_issue("octo", "demo", 1)
    assert str(info.value) == "github api error 404: Not Found"
    assert info.value.status_code == 404


def test_error_without_json_uses_body(mocked, client):
    mocked.add(responses.GET, f"{API}/user/repos", body="boom", status=500)
    with pytest.raises(GitHubError) as info:
        client.list_repos()
    assert str(info.value) == "github api error 500: boom"


def test_invalid_json_on_success(mocked, client):
    mocked.add(responses.GET, f"{API}/repos/octo/demo/pulls/1", body="not json", status=200)
    with pytest.raises(GitHubError, match="unmarshal response"):
        client.get_pull_request("octo", "demo", 1)


def test_empty_body_yields_empty_result(mocked, client):
    mocked.add(responses.GET, f"{API}/repos/octo/demo/pulls/1", body="", status=200)
    result = client.get_pull_request("octo", "demo", 1)
    assert result.number == 0
    assert result.head.ref == ""


def test_connection_error_is_wrapped(mocked, client):
    mocked.add(
        responses.GET,
        f"{API}/user/repos",
        body=requests.ConnectionError("refused"),
    )
    with pytest.raises(GitHubError, match="do request"):
        client.list_repos()