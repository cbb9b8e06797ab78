"""Repository data model: summaries, tree snapshots, file contents and drafts."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RepositorySummary:
    """A repository owned by the authenticated user."""

    id: int
    name: str
    full_name: str  # "owner/name"
    html_url: str

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "html_url": self.html_url,
        }


@dataclass(frozen=True)
class TreeEntry:
    """One node of a recursive tree listing."""

    path: str
    type: str  # "tree" (directory) or "blob" (file)
    sha: str

    @property
    def is_directory(self) -> bool:
        return self.type == "tree"

    @property
    def is_file(self) -> bool:
        return self.type == "blob"


@dataclass(frozen=True)
class RevisionTree:
    """A commit hash and the full entry set of its tree.

    Snapshots are never patched; a reload replaces the whole object.
    """

    sha: str
    entries: tuple[TreeEntry, ...] = ()

    def directories(self) -> list[str]:
        """Paths of all directory entries."""
        return [e.path for e in self.entries if e.is_directory]

    def files(self) -> list[str]:
        """Paths of all file entries."""
        return [e.path for e in self.entries if e.is_file]

    def has_directory(self, path: str) -> bool:
        return any(e.is_directory and e.path == path for e in self.entries)

    def find(self, path: str) -> TreeEntry | None:
        for entry in self.entries:
            if entry.path == path:
                return entry
        return None


@dataclass(frozen=True)
class FileContent:
    """A single blob read from the repository, decoded from base64."""

    type: str
    path: str
    sha: str
    content: bytes

    @property
    def text(self) -> str:
        """Content decoded as UTF-8 text."""
        return self.content.decode("utf-8")


@dataclass(frozen=True)
class ContentItem:
    """One entry of a single-directory contents listing."""

    type: str  # "file" or "dir"
    name: str
    path: str


@dataclass(frozen=True)
class WriteReceipt:
    """What the remote reports after an upsert."""

    name: str
    path: str
    sha: str | None = None


@dataclass
class EditableDraft:
    """The user's in-progress edit of one file.

    ``content`` is text for UTF-8 files and raw bytes for anything else.
    ``sha`` is None for a file that does not exist yet; otherwise it is the
    blob hash the remote must still hold for the write to be accepted.
    """

    path: str
    content: str | bytes
    sha: str | None = None

    @property
    def is_new(self) -> bool:
        return self.sha is None

    @property
    def is_binary(self) -> bool:
        return isinstance(self.content, bytes)

    @property
    def data(self) -> bytes:
        """Content as the bytes that are written to the repository."""
        if isinstance(self.content, bytes):
            return self.content
        return self.content.encode("utf-8")
