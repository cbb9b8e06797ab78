"""Tests for the GitHub client."""

import base64
from unittest.mock import MagicMock

import pytest

from blipper.core.auth import TokenStore
from blipper.core.client import GitHubClient
from blipper.core.transport import ErrorKind, HttpTransport


def response(status_code: int = 200, json_data=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = str(json_data)
    resp.json.return_value = json_data
    return resp


def repo(n: int) -> dict:
    return {
        "id": n,
        "name": f"repo{n}",
        "full_name": f"octocat/repo{n}",
        "html_url": f"https://github.com/octocat/repo{n}",
    }


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(session: MagicMock) -> GitHubClient:
    tokens = TokenStore(use_env=False)
    tokens.set("secret-token")
    return GitHubClient(tokens, transport=HttpTransport(session=session), base_url="https://api.test/")


def sent(session: MagicMock, index: int = -1) -> dict:
    return session.request.call_args_list[index].kwargs


class TestMissingCredential:
    """Every operation fails without a token and makes no call."""

    def test_all_operations(self, session: MagicMock) -> None:
        client = GitHubClient(TokenStore(use_env=False), transport=HttpTransport(session=session))

        results = [
            client.get_current_user(),
            client.list_user_repositories(),
            client.get_repository_contents("o", "r", "/"),
            client.get_repository_file("o", "r", "/a.md"),
            client.get_latest_commit("o", "r"),
            client.get_commit_tree("o", "r", "abc"),
            client.update_repository_file("o", "r", "/a.md", "", "msg"),
        ]

        assert all(r.error_kind == ErrorKind.MISSING_CREDENTIAL for r in results)
        session.request.assert_not_called()


class TestHeaders:
    """Tests for request headers."""

    def test_bearer_and_version_headers(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(json_data={"id": 1, "login": "octocat"})

        result = client.get_current_user()

        assert result.value.login == "octocat"
        headers = sent(session)["headers"]
        assert headers["Authorization"] == "Bearer secret-token"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert sent(session)["url"] == "https://api.test/user"


class TestListRepositories:
    """Tests for paginated repository listing."""

    def test_concatenates_pages_until_empty(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.side_effect = [
            response(json_data=[repo(1), repo(2)]),
            response(json_data=[repo(3)]),
            response(json_data=[]),
        ]

        result = client.list_user_repositories()

        assert result.ok
        assert [r.full_name for r in result.value] == ["octocat/repo1", "octocat/repo2", "octocat/repo3"]
        assert session.request.call_count == 3
        assert sent(session, 0)["url"] == "https://api.test/user/repos?page=1&type=owner"
        assert sent(session, 2)["url"] == "https://api.test/user/repos?page=3&type=owner"

    def test_no_repositories(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(json_data=[])

        result = client.list_user_repositories()

        assert result.ok
        assert result.value == []
        assert session.request.call_count == 1

    def test_failure_discards_earlier_pages(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.side_effect = [
            response(json_data=[repo(1)]),
            response(json_data=[repo(2)]),
            response(status_code=500, json_data={"message": "boom"}),
        ]

        result = client.list_user_repositories()

        assert not result.ok
        assert result.value is None
        assert result.error_kind == ErrorKind.HTTP_ERROR
        assert session.request.call_count == 3

    def test_shape_drift_on_a_page(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.side_effect = [
            response(json_data=[repo(1)]),
            response(json_data=[{"id": 2}]),
        ]

        result = client.list_user_repositories()

        assert result.error_kind == ErrorKind.SHAPE_INVALID


class TestLatestCommit:
    """Tests for resolving the latest revision."""

    def test_returns_first_sha(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(json_data=[{"sha": "abc123"}])

        result = client.get_latest_commit("octocat", "blog")

        assert result.value == "abc123"
        assert sent(session)["url"] == "https://api.test/repos/octocat/blog/commits?per_page=1"

    def test_no_commits(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(json_data=[])

        result = client.get_latest_commit("octocat", "blog")

        assert result.error_kind == ErrorKind.EMPTY_RESULT


class TestCommitTree:
    """Tests for fetching a recursive tree."""

    def test_recursive_tree(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(json_data={
            "sha": "abc123",
            "url": "ignored",
            "tree": [
                {"path": "src", "type": "tree", "sha": "t1", "mode": "040000"},
                {"path": "src/a.mdx", "type": "blob", "sha": "b1", "size": 3},
            ],
            "truncated": False,
        })

        result = client.get_commit_tree("octocat", "blog", "abc123")

        assert result.value.sha == "abc123"
        assert result.value.directories() == ["src"]
        assert result.value.files() == ["src/a.mdx"]
        assert sent(session)["url"] == "https://api.test/repos/octocat/blog/git/trees/abc123?recursive=true"


class TestReadFile:
    """Tests for reading one file."""

    def test_decodes_base64_content(self, client: GitHubClient, session: MagicMock) -> None:
        encoded = base64.encodebytes("héllo\n".encode("utf-8")).decode("ascii")
        session.request.return_value = response(json_data={
            "type": "file",
            "name": "a.mdx",
            "path": "src/a.mdx",
            "sha": "b1",
            "content": encoded,
            "encoding": "base64",
        })

        result = client.get_repository_file("octocat", "blog", "/src/a.mdx")

        assert result.value.text == "héllo\n"
        assert result.value.sha == "b1"
        assert sent(session)["url"] == "https://api.test/repos/octocat/blog/contents/src/a.mdx"

    def test_directory_response_is_shape_invalid(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(json_data=[{"type": "file", "name": "a", "path": "a"}])

        result = client.get_repository_file("octocat", "blog", "/src")

        assert result.error_kind == ErrorKind.SHAPE_INVALID

    def test_not_found(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(status_code=404, json_data={"message": "Not Found"})

        result = client.get_repository_file("octocat", "blog", "/missing.mdx")

        assert result.error_kind == ErrorKind.NOT_FOUND


class TestContents:
    """Tests for single-directory listings."""

    def test_lists_directory(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(json_data=[
            {"type": "dir", "name": "src", "path": "src"},
            {"type": "file", "name": "README.md", "path": "README.md"},
        ])

        result = client.get_repository_contents("octocat", "blog", "/")

        assert [item.name for item in result.value] == ["src", "README.md"]
        assert sent(session)["url"] == "https://api.test/repos/octocat/blog/contents/"


class TestWriteFile:
    """Tests for upserting a file."""

    UPSERTED = {"content": {"name": "a.mdx", "path": "src/a.mdx", "sha": "new"}, "commit": {"sha": "c2"}}

    def test_create_omits_sha(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(status_code=201, json_data=self.UPSERTED)

        result = client.update_repository_file("octocat", "blog", "/src/a.mdx", "aGk=", "update blips")

        assert result.value.path == "src/a.mdx"
        kwargs = sent(session)
        assert kwargs["method"] == "PUT"
        assert kwargs["url"] == "https://api.test/repos/octocat/blog/contents/src/a.mdx"
        assert kwargs["json"] == {"message": "update blips", "content": "aGk="}

    def test_update_sends_sha_and_branch(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(json_data=self.UPSERTED)

        client.update_repository_file("octocat", "blog", "src/a.mdx", "aGk=", "msg", sha="old", branch="drafts")

        assert sent(session)["json"] == {"message": "msg", "content": "aGk=", "sha": "old", "branch": "drafts"}

    def test_stale_sha_is_conflict(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(status_code=409, json_data={"message": "does not match"})

        result = client.update_repository_file("octocat", "blog", "src/a.mdx", "aGk=", "msg", sha="old")

        assert result.error_kind == ErrorKind.CONCURRENCY_CONFLICT
        assert result.error.status_code == 409

    def test_create_over_existing_is_conflict(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(
            status_code=422,
            json_data={"message": "Invalid request.\n\n\"sha\" wasn't supplied."},
        )

        result = client.update_repository_file("octocat", "blog", "src/a.mdx", "aGk=", "msg")

        assert result.error_kind == ErrorKind.CONCURRENCY_CONFLICT

    def test_validation_error_is_not_conflict(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(
            status_code=422,
            json_data={"message": "Invalid request.\n\n\"content\" is not valid Base64."},
        )

        result = client.update_repository_file("octocat", "blog", "/a.mdx", "!!!", "msg")

        assert result.error_kind == ErrorKind.HTTP_ERROR
        assert result.error.status_code == 422

    def test_unparseable_422_is_not_conflict(self, client: GitHubClient, session: MagicMock) -> None:
        resp = response(status_code=422)
        resp.json.side_effect = ValueError("Expecting value")
        session.request.return_value = resp

        result = client.update_repository_file("octocat", "blog", "/a.mdx", "aGk=", "msg")

        assert result.error_kind == ErrorKind.HTTP_ERROR

    def test_other_errors_pass_through(self, client: GitHubClient, session: MagicMock) -> None:
        session.request.return_value = response(status_code=403, json_data={"message": "forbidden"})

        result = client.update_repository_file("octocat", "blog", "src/a.mdx", "aGk=", "msg", sha="old")

        assert result.error_kind == ErrorKind.UNAUTHORIZED
