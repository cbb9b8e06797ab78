#!/usr/bin/env python3
"""CLI entry point for the blip editor."""

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from .core.auth import TokenStore
from .core.client import GitHubClient
from .core.engine import ContentSyncEngine, InvalidTransitionError
from .core.paths import strip_front_matter
from .core.states import EngineState, RepositoryLoaded
from .core.transport import HttpTransport
from .models.config import (
    LAST_REPOSITORY_KEY,
    BlipperConfig,
    JsonPreferenceStore,
    get_config_dir,
)

console = Console()


def _load_config(args: argparse.Namespace) -> BlipperConfig:
    config_path = Path(args.config) if args.config else get_config_dir() / "config.yaml"
    return BlipperConfig.load(config_path)


def _token_store() -> TokenStore:
    return TokenStore(token_file=get_config_dir() / "token")


def _preferences() -> JsonPreferenceStore:
    return JsonPreferenceStore(get_config_dir() / "preferences.json")


def _build_client(config: BlipperConfig) -> GitHubClient:
    return GitHubClient(
        _token_store(),
        transport=HttpTransport(timeout=config.settings.timeout),
        base_url=config.base_url,
        api_version=config.api_version,
    )


def _resolve_repository(args: argparse.Namespace, preferences: JsonPreferenceStore) -> tuple[str, str]:
    """Split ``--repo owner/name``, falling back to the last used repository."""
    full_name = args.repo or preferences.get(LAST_REPOSITORY_KEY)
    if not full_name or "/" not in full_name:
        raise ValueError("No repository given. Use --repo owner/name")
    owner, name = full_name.split("/", 1)
    return owner, name


def _build_engine(args: argparse.Namespace) -> ContentSyncEngine:
    config = _load_config(args)
    preferences = _preferences()
    owner, name = _resolve_repository(args, preferences)
    return ContentSyncEngine(
        _build_client(config),
        owner,
        name,
        preferences,
        settings=config.settings,
    )


def _describe_failure(state: EngineState) -> str:
    error = getattr(state, "error", None)
    if error is None:
        return state.view
    return f"{state.view} ({error.kind.value}): {error}"


async def _load(engine: ContentSyncEngine) -> bool:
    state = await engine.settle()
    if not isinstance(state, RepositoryLoaded):
        console.print(f"[red]Could not load repository contents: {_describe_failure(state)}")
        return False
    return True


def cmd_login(args: argparse.Namespace) -> int:
    """Store an access token."""
    _token_store().set(args.token)
    console.print("[green]Token stored")
    return 0


def cmd_verify_auth(args: argparse.Namespace) -> int:
    """Verify API authentication."""
    console.print("Verifying GitHub API token...", style="blue")

    result = _build_client(_load_config(args)).get_current_user()
    if not result.ok:
        console.print(f"[red]Authentication failed ({result.error.kind.value}): {result.error}")
        return 1

    console.print(f"[green]Authenticated as {result.value.login}")
    return 0


def cmd_repos(args: argparse.Namespace) -> int:
    """List owned repositories."""
    result = _build_client(_load_config(args)).list_user_repositories()
    if not result.ok:
        console.print(f"[red]Could not list repositories ({result.error.kind.value}): {result.error}")
        return 1

    if not result.value:
        console.print("[yellow]No repositories found")
        return 0

    table = Table(title="Repositories")
    table.add_column("Name", style="cyan")
    table.add_column("URL", style="blue")
    for repo in result.value:
        table.add_row(repo.full_name, repo.html_url)
    console.print(table)
    return 0


def cmd_contents(args: argparse.Namespace) -> int:
    """List one directory as the API reports it."""
    owner, name = _resolve_repository(args, _preferences())
    result = _build_client(_load_config(args)).get_repository_contents(owner, name, args.path)
    if not result.ok:
        console.print(f"[red]Could not list {args.path} ({result.error.kind.value}): {result.error}")
        return 1

    table = Table(title=f"{owner}/{name}:{args.path}")
    table.add_column("Type")
    table.add_column("Path")
    for item in result.value:
        style = "blue" if item.type == "dir" else "green"
        table.add_row(item.type, f"[{style}]{item.path}[/{style}]")
    console.print(table)
    return 0


async def _status(engine: ContentSyncEngine) -> int:
    if not await _load(engine):
        return 1

    state = engine.state
    console.print(f"\n[bold]Repository:[/bold] {engine.full_name} @ {state.tree.sha[:7]}")
    console.print(f"[bold]Blips Path:[/bold] {state.posts_dir}")
    console.print(f"[bold]Images Path:[/bold] {state.images_dir}")

    for title, paths in (("Latest Blips", engine.latest_posts()), ("Latest Images", engine.latest_images())):
        table = Table(title=f"\n{title}")
        table.add_column("Path")
        for path in paths:
            table.add_row(path)
        if not paths:
            table.add_row("[dim]None[/dim]")
        console.print(table)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show selected directories and latest files."""
    return asyncio.run(_status(_build_engine(args)))


def _add_directory_nodes(engine: ContentSyncEngine, parent: Tree, directory: str) -> None:
    for child in engine.list_directories(directory):
        node = parent.add(f"[blue]{child.rsplit('/', 1)[-1]}/[/blue]")
        _add_directory_nodes(engine, node, child)


async def _dirs(engine: ContentSyncEngine) -> int:
    if not await _load(engine):
        return 1

    tree = Tree(f"[bold blue]{engine.full_name}[/bold blue]")
    _add_directory_nodes(engine, tree, "/")
    console.print(tree)
    return 0


def cmd_dirs(args: argparse.Namespace) -> int:
    """Show the directory structure."""
    return asyncio.run(_dirs(_build_engine(args)))


async def _set_dirs(engine: ContentSyncEngine, posts: str | None, images: str | None) -> int:
    if not await _load(engine):
        return 1

    if posts:
        engine.select_posts_directory(posts)
    if images:
        engine.select_images_directory(images)

    console.print(f"[green]Blips Path: {engine.state.posts_dir}")
    console.print(f"[green]Images Path: {engine.state.images_dir}")
    return 0


def cmd_set_dirs(args: argparse.Namespace) -> int:
    """Select posts and images directories."""
    return asyncio.run(_set_dirs(_build_engine(args), args.posts, args.images))


async def _open(engine: ContentSyncEngine, path: str) -> bool:
    if not await _load(engine):
        return False

    engine.open_entry(path)
    state = await engine.settle()
    if state.view != "edit-entry":
        console.print(f"[red]Could not load blip {path}: {_describe_failure(state)}")
        return False
    return True


async def _show(engine: ContentSyncEngine, path: str, preview: bool) -> int:
    if not await _open(engine, path):
        return 1

    draft = engine.draft
    if draft.is_binary:
        console.print(f"[yellow]{path} is not UTF-8 text ({len(draft.data)} bytes)")
        return 0

    content = draft.content
    if preview:
        console.print(Markdown(strip_front_matter(content)))
    else:
        console.print(Syntax(content, "markdown"))
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Print a blip's source."""
    return asyncio.run(_show(_build_engine(args), args.path, preview=False))


def cmd_preview(args: argparse.Namespace) -> int:
    """Render a blip without its front matter."""
    return asyncio.run(_show(_build_engine(args), args.path, preview=True))


async def _save(engine: ContentSyncEngine) -> int:
    path = engine.draft.path
    engine.save_entry()
    console.print(f"Saving {path}...", style="blue")

    state = await engine.settle()
    if state.view == "save-entry-failure":
        console.print(f"[red]Failed to save blip: {_describe_failure(state)}")
        return 1
    if not isinstance(state, RepositoryLoaded):
        console.print(f"[yellow]Saved {path}, but reloading failed: {_describe_failure(state)}")
        return 1

    console.print(f"[green]Saved {path}")
    return 0


async def _new(engine: ContentSyncEngine, content_file: str | None, path: str | None) -> int:
    if not await _load(engine):
        return 1

    engine.create_entry()
    content = engine.draft.content
    if content_file:
        content += Path(content_file).read_text()
    engine.update_draft(path=path, content=content)
    return await _save(engine)


def cmd_new(args: argparse.Namespace) -> int:
    """Create a new blip for today."""
    return asyncio.run(_new(_build_engine(args), args.content_file, args.path))


async def _edit(engine: ContentSyncEngine, path: str, content_file: str) -> int:
    if not await _open(engine, path):
        return 1

    engine.update_draft(content=Path(content_file).read_text())
    return await _save(engine)


def cmd_edit(args: argparse.Namespace) -> int:
    """Replace an existing blip's content."""
    return asyncio.run(_edit(_build_engine(args), args.path, args.content_file))


async def _upload(engine: ContentSyncEngine, image: Path, media_type: str | None) -> int:
    if not await _load(engine):
        return 1

    console.print(f"Uploading {image.name}...", style="blue")
    state = await engine.upload_asset(image.read_bytes(), media_type)
    path = getattr(state, "path", None)
    state = await engine.settle()
    if not isinstance(state, RepositoryLoaded):
        console.print(f"[red]Could not upload image: {_describe_failure(state)}")
        return 1

    console.print(f"[green]Uploaded {path}")
    return 0


def cmd_upload(args: argparse.Namespace) -> int:
    """Resize and upload an image."""
    image = Path(args.image)
    media_type = args.media_type or mimetypes.guess_type(image.name)[0]
    return asyncio.run(_upload(_build_engine(args), image, media_type))


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="blipper",
        description="Edit blip posts and images stored in a GitHub repository",
    )
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--repo", help="Repository as owner/name (default: last used)")
    parser.add_argument("--verbose", action="store_true", help="Show debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    login_parser = subparsers.add_parser("login", help="Store a GitHub access token")
    login_parser.add_argument("token", help="Access token")

    subparsers.add_parser("verify-auth", help="Verify API authentication")
    subparsers.add_parser("repos", help="List your repositories")
    contents_parser = subparsers.add_parser("contents", help="List one directory via the contents API")
    contents_parser.add_argument("path", nargs="?", default="", help="Directory path (default: root)")

    subparsers.add_parser("status", help="Show selected directories and latest files")
    subparsers.add_parser("dirs", help="Show the repository directory structure")

    set_dirs_parser = subparsers.add_parser("set-dirs", help="Select blips/images directories")
    set_dirs_parser.add_argument("--posts", help="Directory for blips")
    set_dirs_parser.add_argument("--images", help="Directory for images")

    show_parser = subparsers.add_parser("show", help="Print a blip")
    show_parser.add_argument("path", help="Blip path")

    preview_parser = subparsers.add_parser("preview", help="Render a blip as markdown")
    preview_parser.add_argument("path", help="Blip path")

    new_parser = subparsers.add_parser("new", help="Create a blip for today")
    new_parser.add_argument("--content-file", help="File whose text is appended after the front matter")
    new_parser.add_argument("--path", help="Override the generated path")

    edit_parser = subparsers.add_parser("edit", help="Replace a blip's content")
    edit_parser.add_argument("path", help="Blip path")
    edit_parser.add_argument("--content-file", required=True, help="File with the new content")

    upload_parser = subparsers.add_parser("upload", help="Resize and upload an image")
    upload_parser.add_argument("image", help="Image file")
    upload_parser.add_argument("--media-type", help="Media type (guessed from the file name if omitted)")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    commands = {
        "login": cmd_login,
        "verify-auth": cmd_verify_auth,
        "repos": cmd_repos,
        "contents": cmd_contents,
        "status": cmd_status,
        "dirs": cmd_dirs,
        "set-dirs": cmd_set_dirs,
        "show": cmd_show,
        "preview": cmd_preview,
        "new": cmd_new,
        "edit": cmd_edit,
        "upload": cmd_upload,
    }

    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        return command(args)
    except (InvalidTransitionError, ValueError, OSError) as e:
        console.print(f"[red]Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
