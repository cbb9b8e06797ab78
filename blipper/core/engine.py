"""Browse/edit/publish state machine over a GitHub repository.

The engine owns exactly one current state. User intents are plain methods
that move between states locally; the transient states (loading,
saving) each have one remote effect that ``run_pending`` executes.
Network calls and image encoding run in worker threads, and each effect
applies its result only if the engine is still in the state that started
it. Late results for a state the user has already left are dropped.
"""

import asyncio
import base64
import logging
from datetime import date
from typing import Any, Callable

from ..models.config import (
    IMAGES_DIRECTORY_KEY,
    LAST_REPOSITORY_KEY,
    POSTS_DIRECTORY_KEY,
    BlipperSettings,
    PreferenceStore,
)
from ..models.repository import EditableDraft, RevisionTree
from .client import GitHubClient
from .encoder import resize_and_strip_metadata
from .paths import (
    ROOT,
    filter_children,
    new_post_template,
    next_dated_path,
    normalize_directory,
    normalize_entries,
    normalize_path,
    paginate,
)
from .states import (
    DRAFT_STATES,
    EditEntry,
    EngineState,
    LoadEntry,
    LoadEntryFailure,
    LoadingRepository,
    RepositoryLoaded,
    RepositoryLoadingFailure,
    SaveAsset,
    SaveAssetFailure,
    SaveEntry,
    SaveEntryFailure,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(ValueError):
    """Raised when an intent is not allowed in the current state."""

    pass


class ContentSyncEngine:
    """Drives browsing, editing and publishing of one repository."""

    def __init__(
        self,
        client: GitHubClient,
        owner: str,
        repository: str,
        preferences: PreferenceStore,
        settings: BlipperSettings | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize engine in the loading-repository state.

        Args:
            client: GitHub client used for all remote calls
            owner: Repository owner
            repository: Repository name
            preferences: Remembered directories; read here, written on
                every entry into repository-loaded
            settings: Editing settings (defaults if not provided)
            today: Clock used for generated file names
        """
        self.client = client
        self.owner = owner
        self.repository = repository
        self.preferences = preferences
        self.settings = settings or BlipperSettings()
        self.today = today

        posts_dir = preferences.get(POSTS_DIRECTORY_KEY) or self.settings.posts_directory
        images_dir = preferences.get(IMAGES_DIRECTORY_KEY) or self.settings.images_directory
        self._state: EngineState = LoadingRepository(
            posts_dir=normalize_directory(posts_dir),
            images_dir=normalize_directory(images_dir),
        )
        self._in_flight: list[EngineState] = []

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repository}"

    # -------------------------------------------------------------------------
    # State bookkeeping
    # -------------------------------------------------------------------------

    def _transition(self, new_state: EngineState) -> EngineState:
        logger.info("%s: %s -> %s", self.full_name, self._state.view, new_state.view)
        self._state = new_state
        if isinstance(new_state, RepositoryLoaded):
            self.preferences.set(POSTS_DIRECTORY_KEY, new_state.posts_dir)
            self.preferences.set(IMAGES_DIRECTORY_KEY, new_state.images_dir)
            self.preferences.set(LAST_REPOSITORY_KEY, self.full_name)
        return new_state

    def _apply(self, origin: EngineState, new_state: EngineState | None) -> bool:
        """Apply an effect's result if ``origin`` is still current."""
        if self._state is not origin:
            logger.warning(
                "Dropping result of %s: state moved on to %s",
                origin.view,
                self._state.view,
            )
            return False
        if new_state is not None:
            self._transition(new_state)
        return True

    def _require(self, *state_types: type) -> Any:
        if not isinstance(self._state, state_types):
            allowed = ", ".join(t.view for t in state_types)
            raise InvalidTransitionError(
                f"Not allowed in state {self._state.view} (expected {allowed})"
            )
        return self._state

    @staticmethod
    async def _call(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return await asyncio.to_thread(func, *args, **kwargs)

    # -------------------------------------------------------------------------
    # Effects
    # -------------------------------------------------------------------------

    async def run_pending(self) -> EngineState:
        """Execute the remote effect of the current transient state once.

        Does nothing for settled states, or when the current state's effect
        is already running.
        """
        state = self._state
        if not state.transient or any(s is state for s in self._in_flight):
            return state

        self._in_flight.append(state)
        try:
            if isinstance(state, LoadingRepository):
                new_state = await self._load_repository(state)
            elif isinstance(state, LoadEntry):
                new_state = await self._load_entry(state)
            elif isinstance(state, SaveEntry):
                new_state = await self._save_entry(state)
            else:
                new_state = await self._save_asset(state)
            self._apply(state, new_state)
        finally:
            self._in_flight = [s for s in self._in_flight if s is not state]

        return self._state

    async def settle(self) -> EngineState:
        """Run effects until the engine reaches a non-transient state."""
        while self._state.transient:
            before = self._state
            await self.run_pending()
            if self._state is before:
                break
        return self._state

    async def _load_repository(self, state: LoadingRepository) -> EngineState | None:
        commit = await self._call(self.client.get_latest_commit, self.owner, self.repository)
        if not commit.ok:
            logger.error("Could not resolve latest commit: %s", commit.error)
            return RepositoryLoadingFailure(state.posts_dir, state.images_dir, commit.error)
        if self._state is not state:
            return None

        result = await self._call(
            self.client.get_commit_tree, self.owner, self.repository, commit.value
        )
        if not result.ok:
            logger.error("Could not load tree %s: %s", commit.value, result.error)
            return RepositoryLoadingFailure(state.posts_dir, state.images_dir, result.error)

        tree = RevisionTree(sha=result.value.sha, entries=normalize_entries(result.value.entries))
        return RepositoryLoaded(
            posts_dir=self._existing_directory(tree, state.posts_dir),
            images_dir=self._existing_directory(tree, state.images_dir),
            tree=tree,
        )

    @staticmethod
    def _existing_directory(tree: RevisionTree, directory: str) -> str:
        if directory != ROOT and not tree.has_directory(directory):
            logger.info("Remembered directory %s no longer exists, using root", directory)
            return ROOT
        return directory

    async def _load_entry(self, state: LoadEntry) -> EngineState:
        result = await self._call(
            self.client.get_repository_file, self.owner, self.repository, state.path
        )
        if not result.ok:
            logger.error("Loading %s failed: %s", state.path, result.error)
            return LoadEntryFailure(state.path, state.posts_dir, state.images_dir, state.tree, result.error)

        content: str | bytes
        try:
            content = result.value.text
        except UnicodeDecodeError:
            logger.info("%s is not UTF-8 text, editing it as bytes", state.path)
            content = result.value.content

        return EditEntry(
            draft=EditableDraft(path=state.path, content=content, sha=result.value.sha),
            posts_dir=state.posts_dir,
            images_dir=state.images_dir,
            tree=state.tree,
        )

    async def _save_entry(self, state: SaveEntry) -> EngineState:
        draft = state.draft
        result = await self._call(
            self.client.update_repository_file,
            self.owner,
            self.repository,
            draft.path,
            base64.b64encode(draft.data).decode("ascii"),
            self.settings.post_commit_message,
            draft.sha,
            self.settings.branch,
        )
        if not result.ok:
            logger.error("Saving %s failed: %s", draft.path, result.error)
            return SaveEntryFailure(draft, state.posts_dir, state.images_dir, state.tree, result.error)
        return LoadingRepository(posts_dir=state.posts_dir, images_dir=state.images_dir)

    async def _save_asset(self, state: SaveAsset) -> EngineState:
        result = await self._call(
            self.client.update_repository_file,
            self.owner,
            self.repository,
            state.path,
            state.content,
            self.settings.image_commit_message,
            state.sha,
            self.settings.branch,
        )
        if not result.ok:
            logger.error("Uploading %s failed: %s", state.path, result.error)
            return SaveAssetFailure(
                posts_dir=state.posts_dir,
                images_dir=state.images_dir,
                tree=state.tree,
                path=state.path,
                content=state.content,
                error=result.error,
            )
        return LoadingRepository(posts_dir=state.posts_dir, images_dir=state.images_dir)

    # -------------------------------------------------------------------------
    # User intents
    # -------------------------------------------------------------------------

    def reload(self) -> EngineState:
        """Discard the current state and load a fresh snapshot."""
        state = self._state
        return self._transition(LoadingRepository(posts_dir=state.posts_dir, images_dir=state.images_dir))

    def select_posts_directory(self, directory: str) -> EngineState:
        state = self._require(RepositoryLoaded)
        return self._transition(
            RepositoryLoaded(
                posts_dir=self._validated_directory(state.tree, directory),
                images_dir=state.images_dir,
                tree=state.tree,
            )
        )

    def select_images_directory(self, directory: str) -> EngineState:
        state = self._require(RepositoryLoaded)
        return self._transition(
            RepositoryLoaded(
                posts_dir=state.posts_dir,
                images_dir=self._validated_directory(state.tree, directory),
                tree=state.tree,
            )
        )

    @staticmethod
    def _validated_directory(tree: RevisionTree, directory: str) -> str:
        directory = normalize_directory(directory)
        if directory != ROOT and not tree.has_directory(directory):
            raise InvalidTransitionError(f"No such directory: {directory}")
        return directory

    def create_entry(self) -> EditEntry:
        """Start a new post named after today's date."""
        state = self._require(RepositoryLoaded)
        today = self.today()
        path = next_dated_path(
            state.tree.files(),
            state.posts_dir,
            today,
            self.settings.post_extension,
        )
        return self._transition(
            EditEntry(
                draft=EditableDraft(path=path, content=new_post_template(today), sha=None),
                posts_dir=state.posts_dir,
                images_dir=state.images_dir,
                tree=state.tree,
            )
        )

    def open_entry(self, path: str) -> LoadEntry:
        state = self._require(RepositoryLoaded)
        return self._transition(
            LoadEntry(
                path=normalize_path(path),
                posts_dir=state.posts_dir,
                images_dir=state.images_dir,
                tree=state.tree,
            )
        )

    def update_draft(self, path: str | None = None, content: str | bytes | None = None) -> EditEntry:
        """Edit the open draft in place."""
        state = self._require(EditEntry, SaveEntryFailure)
        if path is not None:
            state.draft.path = normalize_path(path)
        if content is not None:
            state.draft.content = content
        if isinstance(state, EditEntry):
            return state
        return self._transition(EditEntry(state.draft, state.posts_dir, state.images_dir, state.tree))

    def cancel_edit(self) -> LoadingRepository:
        state = self._require(EditEntry, SaveEntryFailure)
        return self._transition(LoadingRepository(posts_dir=state.posts_dir, images_dir=state.images_dir))

    def save_entry(self) -> SaveEntry:
        state = self._require(EditEntry, SaveEntryFailure)
        return self._transition(SaveEntry(state.draft, state.posts_dir, state.images_dir, state.tree))

    async def upload_asset(self, data: bytes, media_type: str | None = None) -> EngineState:
        """Encode an image and move to save-asset under a generated name.

        Encoding failures land in save-asset-failure. The returned state is
        save-asset on success; call ``settle`` to perform the upload.
        """
        state = self._require(RepositoryLoaded)
        encoded = await self._call(
            resize_and_strip_metadata,
            data,
            media_type,
            self.settings.max_image_size,
            self.settings.image_quality,
        )
        if not encoded.ok:
            logger.error("Image encoding failed: %s", encoded.error)
            new_state: EngineState = SaveAssetFailure(
                posts_dir=state.posts_dir,
                images_dir=state.images_dir,
                tree=state.tree,
                error=encoded.error,
            )
        else:
            asset = encoded.value
            new_state = SaveAsset(
                path=next_dated_path(state.tree.files(), state.images_dir, self.today(), f".{asset.ext}"),
                content=asset.base64,
                posts_dir=state.posts_dir,
                images_dir=state.images_dir,
                tree=state.tree,
                sha=None,
            )
        self._apply(state, new_state)
        return self._state

    def retry_asset(self) -> SaveAsset:
        state = self._require(SaveAssetFailure)
        if state.path is None or state.content is None:
            raise InvalidTransitionError("Nothing to retry: the image was never encoded")
        return self._transition(
            SaveAsset(
                path=state.path,
                content=state.content,
                posts_dir=state.posts_dir,
                images_dir=state.images_dir,
                tree=state.tree,
            )
        )

    # -------------------------------------------------------------------------
    # Listings over the loaded snapshot
    # -------------------------------------------------------------------------

    @property
    def tree(self) -> RevisionTree:
        tree = getattr(self._state, "tree", None)
        if tree is None:
            raise InvalidTransitionError(f"No repository snapshot in state {self._state.view}")
        return tree

    @property
    def draft(self) -> EditableDraft:
        state = self._require(*DRAFT_STATES)
        return state.draft

    def list_files(
        self,
        directory: str | None = None,
        reverse: bool = False,
        page: int = 0,
        limit: int | None = None,
    ) -> list[str]:
        """Files directly inside ``directory`` (all files if None), sorted by path."""
        parent = normalize_path(directory) if directory is not None else None
        files = sorted(filter_children(self.tree.files(), parent), reverse=reverse)
        return paginate(files, page, limit)

    def list_directories(self, parent: str | None = None) -> list[str]:
        """Directories directly inside ``parent`` (all directories if None)."""
        directory = normalize_path(parent) if parent is not None else None
        return sorted(filter_children(self.tree.directories(), directory))

    def has_next_page(self, directory: str, page: int, limit: int) -> bool:
        total = len(filter_children(self.tree.files(), normalize_path(directory)))
        return (page + 1) * limit < total

    def latest_posts(self, page: int = 0) -> list[str]:
        return self.list_files(self._state.posts_dir, reverse=True, page=page, limit=self.settings.page_size)

    def latest_images(self, page: int = 0) -> list[str]:
        return self.list_files(self._state.images_dir, reverse=True, page=page, limit=self.settings.page_size)
