"""Bearer token storage for GitHub API access."""

import os
from pathlib import Path

from dotenv import load_dotenv

TOKEN_ENV_VARS = ("BLIPPER_GITHUB_TOKEN", "GITHUB_TOKEN")


class TokenStore:
    """Holds the current access token.

    The token is obtained elsewhere (OAuth code exchange or a personal
    access token); this store only keeps it. Lookup order is the value set
    in this process, then the token file, then the environment (a ``.env``
    file is honoured).
    """

    def __init__(self, token_file: Path | None = None, use_env: bool = True) -> None:
        """Initialize token store.

        Args:
            token_file: Optional file the token is persisted to
            use_env: Whether to fall back to BLIPPER_GITHUB_TOKEN / GITHUB_TOKEN
        """
        self.token_file = Path(token_file) if token_file else None
        self.use_env = use_env
        self._token: str | None = None

    def get(self) -> str | None:
        """Return the stored token, or None if none is available."""
        if self._token:
            return self._token

        if self.token_file is not None and self.token_file.exists():
            token = self.token_file.read_text().strip()
            if token:
                self._token = token
                return token

        if self.use_env:
            load_dotenv()
            for var in TOKEN_ENV_VARS:
                token = os.getenv(var, "")
                if token:
                    return token

        return None

    def set(self, token: str) -> None:
        """Store a token for this process and, if configured, on disk."""
        self._token = token
        if self.token_file is not None:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)
            self.token_file.write_text(token + "\n")
            self.token_file.chmod(0o600)
