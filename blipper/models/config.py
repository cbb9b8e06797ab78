"""Configuration: static settings (YAML) and remembered preferences (key/value)."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_API_VERSION = "2022-11-28"

# Preference keys
POSTS_DIRECTORY_KEY = "blips-directory"
IMAGES_DIRECTORY_KEY = "images-directory"
LAST_REPOSITORY_KEY = "last-repository"


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return Path.home() / ".config" / "blipper"


@dataclass
class BlipperSettings:
    """Editing and upload settings."""

    posts_directory: str = "/src/collections/blips"
    images_directory: str = "/public/img/blips"
    post_extension: str = ".mdx"
    max_image_size: int = 1000
    image_quality: float = 0.9
    post_commit_message: str = "update blips"
    image_commit_message: str = "upload image"
    # Branch to commit to (None = repository default branch)
    branch: str | None = None
    page_size: int = 5
    timeout: float = 30

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlipperSettings":
        """Create from dictionary."""
        defaults = cls()
        return cls(
            posts_directory=data.get("posts_directory", defaults.posts_directory),
            images_directory=data.get("images_directory", defaults.images_directory),
            post_extension=data.get("post_extension", defaults.post_extension),
            max_image_size=int(data.get("max_image_size", defaults.max_image_size)),
            image_quality=float(data.get("image_quality", defaults.image_quality)),
            post_commit_message=data.get("post_commit_message", defaults.post_commit_message),
            image_commit_message=data.get("image_commit_message", defaults.image_commit_message),
            branch=data.get("branch"),
            page_size=int(data.get("page_size", defaults.page_size)),
            timeout=float(data.get("timeout", defaults.timeout)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "posts_directory": self.posts_directory,
            "images_directory": self.images_directory,
            "post_extension": self.post_extension,
            "max_image_size": self.max_image_size,
            "image_quality": self.image_quality,
            "post_commit_message": self.post_commit_message,
            "image_commit_message": self.image_commit_message,
            "branch": self.branch,
            "page_size": self.page_size,
            "timeout": self.timeout,
        }


@dataclass
class BlipperConfig:
    """Main configuration for the blip editor."""

    base_url: str = DEFAULT_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    settings: BlipperSettings = field(default_factory=BlipperSettings)

    @classmethod
    def load(cls, config_path: Path) -> "BlipperConfig":
        """Load configuration from YAML file, or defaults if it does not exist."""
        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(
            base_url=data.get("base_url", DEFAULT_BASE_URL),
            api_version=data.get("api_version", DEFAULT_API_VERSION),
            settings=BlipperSettings.from_dict(data.get("settings") or {}),
        )

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        data: dict[str, Any] = {
            "base_url": self.base_url,
            "api_version": self.api_version,
            "settings": self.settings.to_dict(),
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


class PreferenceStore(Protocol):
    """Advisory key/value storage for last-used choices."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryPreferenceStore:
    """Preference store that lives only as long as the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class JsonPreferenceStore:
    """Preference store backed by a JSON file."""

    def __init__(self, path: Path) -> None:
        """Initialize store.

        Args:
            path: Path to preferences.json
        """
        self.path = Path(path)
        self._values: dict[str, str] | None = None

    @property
    def values(self) -> dict[str, str]:
        """Get or load the stored values."""
        if self._values is None:
            self._values = self._load()
        return self._values

    def _load(self) -> dict[str, str]:
        if self.path.exists():
            with open(self.path) as f:
                data = json.load(f)
            return {str(k): str(v) for k, v in data.items()}
        return {}

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self.values, f, indent=2)
            f.write("\n")
