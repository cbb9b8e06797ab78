"""Repository path helpers.

All paths handled here are in normalized form: a single leading ``/``
followed by the path relative to the repository root. ``/`` is the root.
"""

import re
from datetime import date

from ..models.repository import TreeEntry

SEPARATOR = "/"
ROOT = "/"

_FRONT_MATTER = re.compile(r"---[\s\S]*?---")


def normalize_path(path: str) -> str:
    """Give a path exactly one leading separator.

    Idempotent: ``"a/b"``, ``"/a/b"`` and ``"//a/b"`` all become ``"/a/b"``.
    """
    return SEPARATOR + path.lstrip(SEPARATOR)


def normalize_directory(path: str) -> str:
    """Normalize a directory path and drop any trailing separator (except for the root)."""
    return normalize_path(path).rstrip(SEPARATOR) or ROOT


def normalize_entries(entries: tuple[TreeEntry, ...]) -> tuple[TreeEntry, ...]:
    return tuple(
        TreeEntry(path=normalize_path(e.path), type=e.type, sha=e.sha) for e in entries
    )


def is_direct_child(path: str, parent: str) -> bool:
    """True if ``path`` sits exactly one level below ``parent``.

    Args:
        path: Normalized candidate path
        parent: Normalized directory path (``/`` for the root)

    Returns:
        True only for immediate children; deeper descendants and the
        parent itself are excluded
    """
    prefix = parent.rstrip(SEPARATOR) + SEPARATOR
    if not path.startswith(prefix):
        return False
    remainder = path[len(prefix):]
    return remainder != "" and SEPARATOR not in remainder


def filter_children(paths: list[str], parent: str | None) -> list[str]:
    """Keep only the direct children of ``parent`` (all paths if None)."""
    if parent is None:
        return list(paths)
    return [p for p in paths if is_direct_child(p, parent)]


def paginate(items: list[str], page: int, limit: int | None) -> list[str]:
    """Slice one zero-based page of ``limit`` items."""
    if limit is None:
        return list(items)
    start = page * limit
    return items[start:start + limit]


def date_prefix(directory: str, today: date) -> str:
    """Normalized ``{directory}/{YYYYMMDD}`` prefix for generated names."""
    return normalize_path(f"{directory}/{today:%Y%m%d}")


def next_dated_path(
    files: list[str],
    directory: str,
    today: date,
    extension: str,
) -> str:
    """Generate ``{directory}/{YYYYMMDD}_{NN}{extension}``.

    NN is one more than the number of files already named for that day
    with the same extension, zero-padded to two digits.

    Args:
        files: Normalized file paths of the current snapshot
        directory: Normalized target directory
        today: Day the name is generated for
        extension: Extension including the dot (e.g. ".mdx")

    Returns:
        Normalized path for the new file
    """
    prefix = date_prefix(directory, today)
    existing = [f for f in files if f.startswith(prefix) and f.endswith(extension)]
    return f"{prefix}_{len(existing) + 1:02d}{extension}"


def format_pub_date(day: date) -> str:
    """Format like ``Oct 19, 2026``."""
    return f"{day:%b} {day:%d}, {day:%Y}"


def new_post_template(day: date) -> str:
    """Front matter block for a freshly created post."""
    return f"---\npubDate: {format_pub_date(day)}\n---\n"


def strip_front_matter(content: str) -> str:
    """Remove the first front matter block, for previews."""
    return _FRONT_MATTER.sub("", content, count=1).strip()
