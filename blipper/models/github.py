"""Expected response shapes for the GitHub REST API.

Only the fields this tool reads are declared; anything else the API sends
is ignored during validation.
"""

from typing import Literal

from pydantic import BaseModel


class CurrentUser(BaseModel):
    id: int
    login: str


class RepositoryListItem(BaseModel):
    id: int
    name: str
    full_name: str
    html_url: str


class ContentListItem(BaseModel):
    type: str
    name: str
    path: str


class FileContentResponse(BaseModel):
    type: str
    name: str
    path: str
    sha: str
    content: str
    encoding: Literal["base64"]


class CommitListItem(BaseModel):
    sha: str


class TreeItem(BaseModel):
    path: str
    type: str
    sha: str


class TreeResponse(BaseModel):
    sha: str
    tree: list[TreeItem]
    truncated: bool = False


class UpsertedContent(BaseModel):
    name: str
    path: str
    sha: str | None = None


class UpsertFileResponse(BaseModel):
    content: UpsertedContent
