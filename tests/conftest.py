"""Pytest configuration and fixtures."""

import base64
import hashlib
import io
from datetime import date
from typing import Any

import pytest
from PIL import Image

from blipper.core.engine import ContentSyncEngine
from blipper.core.transport import ApiResult, ErrorKind
from blipper.models.config import BlipperSettings, MemoryPreferenceStore
from blipper.models.repository import FileContent, RevisionTree, TreeEntry, WriteReceipt

TODAY = date(2026, 10, 19)


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


class FakeGitHub:
    """In-memory stand-in for GitHubClient.

    Holds one branch of files, creates a commit per write and enforces the
    blob hash precondition like the contents API does.
    """

    def __init__(self, files: dict[str, bytes] | None = None, directories: list[str] | None = None) -> None:
        self.files: dict[str, bytes] = dict(files or {})
        self.extra_directories = set(directories or [])
        self.commits = 1
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, ApiResult[Any]] = {}

    def _fail(self, name: str) -> ApiResult[Any] | None:
        return self.failures.get(name)

    def external_write(self, path: str, content: bytes) -> None:
        """Someone else commits to the repository."""
        self.files[path] = content
        self.commits += 1

    def get_latest_commit(self, owner: str, repository: str) -> ApiResult[str]:
        self.calls.append(("get_latest_commit", (owner, repository)))
        return self._fail("get_latest_commit") or ApiResult.success(f"commit{self.commits}")

    def get_commit_tree(self, owner: str, repository: str, commit: str) -> ApiResult[RevisionTree]:
        self.calls.append(("get_commit_tree", (owner, repository, commit)))
        failure = self._fail("get_commit_tree")
        if failure:
            return failure

        directories = set(self.extra_directories)
        for path in self.files:
            parts = path.split("/")[:-1]
            for i in range(1, len(parts) + 1):
                directories.add("/".join(parts[:i]))

        entries = [TreeEntry(path=d, type="tree", sha=blob_sha(d.encode())) for d in sorted(directories)]
        entries += [
            TreeEntry(path=p, type="blob", sha=blob_sha(c)) for p, c in sorted(self.files.items())
        ]
        return ApiResult.success(RevisionTree(sha=commit, entries=tuple(entries)))

    def get_repository_file(self, owner: str, repository: str, path: str) -> ApiResult[FileContent]:
        self.calls.append(("get_repository_file", (owner, repository, path)))
        failure = self._fail("get_repository_file")
        if failure:
            return failure

        key = path.lstrip("/")
        if key not in self.files:
            return ApiResult.failure(ErrorKind.NOT_FOUND, f"{path} not found", 404)
        content = self.files[key]
        return ApiResult.success(FileContent(type="file", path=key, sha=blob_sha(content), content=content))

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
        self.calls.append(("update_repository_file", (owner, repository, path, content, message, sha, branch)))
        failure = self._fail("update_repository_file")
        if failure:
            return failure

        key = path.lstrip("/")
        current = self.files.get(key)
        if sha is not None and (current is None or blob_sha(current) != sha):
            return ApiResult.failure(ErrorKind.CONCURRENCY_CONFLICT, f"{key} does not match {sha}", 409)

        data = base64.b64decode(content)
        self.external_write(key, data)
        return ApiResult.success(WriteReceipt(name=key.rsplit("/", 1)[-1], path=key, sha=blob_sha(data)))

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


def make_image(
    width: int,
    height: int,
    fmt: str = "PNG",
    mode: str = "RGB",
    exif: bytes | None = None,
) -> bytes:
    """Encode a solid-colour test image."""
    image = Image.new(mode, (width, height))
    buffer = io.BytesIO()
    kwargs: dict[str, Any] = {}
    if exif is not None:
        kwargs["exif"] = exif
    image.save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


@pytest.fixture
def remote() -> FakeGitHub:
    return FakeGitHub(
        files={
            "README.md": b"# Blog\n",
            "src/collections/blips/20261018_01.mdx": b"---\npubDate: Oct 18, 2026\n---\nYesterday\n",
            "public/img/blips/20261018_01.jpg": b"\xff\xd8\xff",
        }
    )


@pytest.fixture
def preferences() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture
def engine(remote: FakeGitHub, preferences: MemoryPreferenceStore) -> ContentSyncEngine:
    return ContentSyncEngine(
        remote,  # type: ignore[arg-type]
        "octocat",
        "blog",
        preferences,
        settings=BlipperSettings(),
        today=lambda: TODAY,
    )
