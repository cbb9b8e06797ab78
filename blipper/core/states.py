"""Workflow states of the content sync engine.

Each state is its own frozen dataclass, so a state only carries the fields
that make sense for it. ``view`` names the state.
"""

from dataclasses import dataclass
from typing import ClassVar, Union

from ..models.repository import EditableDraft, RevisionTree
from .transport import BlipperAPIError


@dataclass(frozen=True)
class LoadingRepository:
    view: ClassVar[str] = "loading-repository"
    transient: ClassVar[bool] = True

    posts_dir: str
    images_dir: str


@dataclass(frozen=True)
class RepositoryLoadingFailure:
    view: ClassVar[str] = "repository-loading-failure"
    transient: ClassVar[bool] = False

    posts_dir: str
    images_dir: str
    error: BlipperAPIError | None = None


@dataclass(frozen=True)
class RepositoryLoaded:
    view: ClassVar[str] = "repository-loaded"
    transient: ClassVar[bool] = False

    posts_dir: str
    images_dir: str
    tree: RevisionTree


@dataclass(frozen=True)
class LoadEntry:
    view: ClassVar[str] = "load-entry"
    transient: ClassVar[bool] = True

    path: str
    posts_dir: str
    images_dir: str
    tree: RevisionTree


@dataclass(frozen=True)
class LoadEntryFailure:
    view: ClassVar[str] = "load-entry-failure"
    transient: ClassVar[bool] = False

    path: str
    posts_dir: str
    images_dir: str
    tree: RevisionTree
    error: BlipperAPIError | None = None


@dataclass(frozen=True)
class EditEntry:
    """Draft open for local edits; the draft object is mutated in place."""

    view: ClassVar[str] = "edit-entry"
    transient: ClassVar[bool] = False

    draft: EditableDraft
    posts_dir: str
    images_dir: str
    tree: RevisionTree


@dataclass(frozen=True)
class SaveEntry:
    view: ClassVar[str] = "save-entry"
    transient: ClassVar[bool] = True

    draft: EditableDraft
    posts_dir: str
    images_dir: str
    tree: RevisionTree


@dataclass(frozen=True)
class SaveEntryFailure:
    view: ClassVar[str] = "save-entry-failure"
    transient: ClassVar[bool] = False

    draft: EditableDraft
    posts_dir: str
    images_dir: str
    tree: RevisionTree
    error: BlipperAPIError | None = None


@dataclass(frozen=True)
class SaveAsset:
    view: ClassVar[str] = "save-asset"
    transient: ClassVar[bool] = True

    path: str
    content: str  # base64
    posts_dir: str
    images_dir: str
    tree: RevisionTree
    sha: str | None = None


@dataclass(frozen=True)
class SaveAssetFailure:
    """Asset upload failed; path/content are kept when encoding had succeeded."""

    view: ClassVar[str] = "save-asset-failure"
    transient: ClassVar[bool] = False

    posts_dir: str
    images_dir: str
    tree: RevisionTree
    path: str | None = None
    content: str | None = None
    error: BlipperAPIError | None = None


EngineState = Union[
    LoadingRepository,
    RepositoryLoadingFailure,
    RepositoryLoaded,
    LoadEntry,
    LoadEntryFailure,
    EditEntry,
    SaveEntry,
    SaveEntryFailure,
    SaveAsset,
    SaveAssetFailure,
]

DRAFT_STATES = (EditEntry, SaveEntry, SaveEntryFailure)
