"""GitHub REST API client for repository content operations."""

import base64
import binascii
import logging
from typing import Any
from urllib.parse import quote, urlencode

from ..models.config import DEFAULT_API_VERSION, DEFAULT_BASE_URL
from ..models.github import (
    CommitListItem,
    ContentListItem,
    CurrentUser,
    FileContentResponse,
    RepositoryListItem,
    TreeResponse,
    UpsertFileResponse,
)
from ..models.repository import (
    ContentItem,
    FileContent,
    RepositorySummary,
    RevisionTree,
    TreeEntry,
    WriteReceipt,
)
from .auth import TokenStore
from .transport import ApiResult, BlipperAPIError, ErrorKind, HttpTransport

logger = logging.getLogger(__name__)

SHA_NOT_SUPPLIED = "\"sha\" wasn't supplied"


def _missing_credential() -> ApiResult[Any]:
    return ApiResult.failure(ErrorKind.MISSING_CREDENTIAL, "Token not set")


def _error_message(error: BlipperAPIError) -> str:
    """The ``message`` field of a GitHub error body, or empty if there is none."""
    if error.response is None:
        return ""
    try:
        body = error.response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("message", ""))
    return ""


class GitHubClient:
    """Repository operations on top of HttpTransport.

    Every operation checks for a stored token first; without one it fails
    with ``missing-credential`` and makes no network call. Failures are
    returned as ApiResult values, never raised.
    """

    def __init__(
        self,
        tokens: TokenStore,
        transport: HttpTransport | None = None,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
    ) -> None:
        """Initialize client.

        Args:
            tokens: Where the bearer token is read from on every call
            transport: HttpTransport (created if not provided)
            base_url: GitHub API base URL
            api_version: Value for the X-GitHub-Api-Version header
        """
        self.tokens = tokens
        self.transport = transport or HttpTransport()
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": self.api_version,
        }

    def _url(self, path: str, query_params: dict[str, str] | None = None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if query_params:
            url += "?" + urlencode(query_params)
        return url

    @staticmethod
    def _content_path(path: str) -> str:
        """Repository file path as used in /contents/ URLs (no leading slash)."""
        return quote(path.lstrip("/"))

    # -------------------------------------------------------------------------
    # User Operations
    # -------------------------------------------------------------------------

    def get_current_user(self) -> ApiResult[CurrentUser]:
        """Get the login of the token's owner."""
        token = self.tokens.get()
        if token is None:
            return _missing_credential()

        return self.transport.get(self._url("/user"), CurrentUser, headers=self._headers(token))

    def list_user_repositories(self) -> ApiResult[list[RepositorySummary]]:
        """List all repositories owned by the authenticated user.

        Pages are requested from 1 upwards until an empty page comes back.
        A failure on any page fails the whole listing; partial results are
        discarded.
        """
        token = self.tokens.get()
        if token is None:
            return _missing_credential()

        repositories: list[RepositorySummary] = []
        page = 1
        while True:
            url = self._url("/user/repos", {"page": str(page), "type": "owner"})
            result = self.transport.get(url, list[RepositoryListItem], headers=self._headers(token))
            if not result.ok:
                logger.debug("Repository listing failed on page %d", page)
                return ApiResult.failure(result.error)
            if not result.value:
                break

            repositories.extend(
                RepositorySummary(
                    id=item.id,
                    name=item.name,
                    full_name=item.full_name,
                    html_url=item.html_url,
                )
                for item in result.value
            )
            page += 1

        return ApiResult.success(repositories)

    # -------------------------------------------------------------------------
    # Repository Content Operations
    # -------------------------------------------------------------------------

    def get_repository_contents(
        self,
        owner: str,
        repository: str,
        path: str,
    ) -> ApiResult[list[ContentItem]]:
        """List the entries of one directory (non-recursive)."""
        token = self.tokens.get()
        if token is None:
            return _missing_credential()

        url = self._url(f"/repos/{owner}/{repository}/contents/{self._content_path(path)}")
        result = self.transport.get(url, list[ContentListItem], headers=self._headers(token))
        if not result.ok:
            return ApiResult.failure(result.error)
        return ApiResult.success(
            [ContentItem(type=item.type, name=item.name, path=item.path) for item in result.value]
        )

    def get_repository_file(
        self,
        owner: str,
        repository: str,
        path: str,
    ) -> ApiResult[FileContent]:
        """Read one file, decoding its base64 transport encoding.

        Args:
            owner: Repository owner
            repository: Repository name
            path: File path (a leading slash is ignored)

        Returns:
            ApiResult with the file's bytes and blob hash
        """
        token = self.tokens.get()
        if token is None:
            return _missing_credential()

        url = self._url(f"/repos/{owner}/{repository}/contents/{self._content_path(path)}")
        result = self.transport.get(url, FileContentResponse, headers=self._headers(token))
        if not result.ok:
            return ApiResult.failure(result.error)

        data = result.value
        try:
            content = base64.b64decode(data.content)
        except (binascii.Error, ValueError) as e:
            return ApiResult.failure(ErrorKind.DECODE_FAILURE, f"Could not decode {data.path}: {e}")

        return ApiResult.success(
            FileContent(type=data.type, path=data.path, sha=data.sha, content=content)
        )

    def get_latest_commit(self, owner: str, repository: str) -> ApiResult[str]:
        """Get the hash of the most recent commit."""
        token = self.tokens.get()
        if token is None:
            return _missing_credential()

        url = self._url(f"/repos/{owner}/{repository}/commits", {"per_page": "1"})
        result = self.transport.get(url, list[CommitListItem], headers=self._headers(token))
        if not result.ok:
            return ApiResult.failure(result.error)
        if not result.value:
            return ApiResult.failure(ErrorKind.EMPTY_RESULT, "No commits found")

        return ApiResult.success(result.value[0].sha)

    def get_commit_tree(self, owner: str, repository: str, commit: str) -> ApiResult[RevisionTree]:
        """Get the full recursive tree of a commit in one call.

        Paths are returned as the API reports them (relative, no leading slash).
        """
        token = self.tokens.get()
        if token is None:
            return _missing_credential()

        url = self._url(f"/repos/{owner}/{repository}/git/trees/{commit}", {"recursive": "true"})
        result = self.transport.get(url, TreeResponse, headers=self._headers(token))
        if not result.ok:
            return ApiResult.failure(result.error)

        data = result.value
        if data.truncated:
            logger.warning("Tree for %s/%s@%s was truncated by the API", owner, repository, commit)

        entries = tuple(TreeEntry(path=item.path, type=item.type, sha=item.sha) for item in data.tree)
        return ApiResult.success(RevisionTree(sha=data.sha, entries=entries))

    def update_repository_file(
        self,
        owner: str,
        repository: str,
        path: str,
        content: str,
        message: str,
        sha: str | None = None,
        branch: str | None = None,
    ) -> ApiResult[WriteReceipt]:
        """Create or replace one file.

        The remote compares ``sha`` with the current blob atomically: omit it
        to create a new file, pass the last known hash to replace one. A
        rejected precondition comes back as ``concurrency-conflict``.

        Args:
            owner: Repository owner
            repository: Repository name
            path: File path (a leading slash is ignored)
            content: Base64-encoded file content
            message: Commit message
            sha: Expected current blob hash, or None to create
            branch: Target branch (default branch if None)

        Returns:
            ApiResult with the written file's name and path
        """
        token = self.tokens.get()
        if token is None:
            return _missing_credential()

        body: dict[str, Any] = {"message": message, "content": content}
        if sha:
            body["sha"] = sha
        if branch:
            body["branch"] = branch

        url = self._url(f"/repos/{owner}/{repository}/contents/{self._content_path(path)}")
        result = self.transport.put(url, body, UpsertFileResponse, headers=self._headers(token))
        if not result.ok:
            status = result.error.status_code
            # A create that hits an existing file is rejected with this 422 message
            missing_sha = status == 422 and not sha and SHA_NOT_SUPPLIED in _error_message(result.error)
            if status == 409 or missing_sha:
                return ApiResult.failure(
                    ErrorKind.CONCURRENCY_CONFLICT,
                    f"{path} changed on the remote since it was loaded",
                    status,
                )
            return ApiResult.failure(result.error)

        written = result.value.content
        return ApiResult.success(WriteReceipt(name=written.name, path=written.path, sha=written.sha))
