"""Data models for the blip editor."""

from .config import (
    BlipperConfig,
    BlipperSettings,
    JsonPreferenceStore,
    MemoryPreferenceStore,
    PreferenceStore,
)
from .repository import (
    ContentItem,
    EditableDraft,
    FileContent,
    RepositorySummary,
    RevisionTree,
    TreeEntry,
    WriteReceipt,
)

__all__ = [
    "BlipperConfig",
    "BlipperSettings",
    "ContentItem",
    "EditableDraft",
    "FileContent",
    "JsonPreferenceStore",
    "MemoryPreferenceStore",
    "PreferenceStore",
    "RepositorySummary",
    "RevisionTree",
    "TreeEntry",
    "WriteReceipt",
]
