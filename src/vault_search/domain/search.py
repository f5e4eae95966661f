"""Domain models for search results.

Following Cosmic Python principles:
- Value Objects are immutable (frozen=True)
- No infrastructure dependencies

Result items form a tagged union discriminated by ``kind``: a vault search
yields ``FileItem`` entries, an in-file search yields ``LineItem`` entries.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from vault_search.utils.file_types import FileType, get_basename, get_extension, get_file_type, get_folder_path


class EngineType(str, Enum):
    LEXICAL = "lexical"
    SEMANTIC = "semantic"


class SearchStatus(str, Enum):
    OK = "ok"
    UNSUPPORTED = "unsupported"
    NOT_READY = "not_ready"


class HighlightedLine(BaseModel):
    """A line excerpt plus the columns to render in bold."""

    model_config = ConfigDict(frozen=True)

    text: str
    row: int
    col: int = 0
    positions: list[int] = Field(default_factory=list)


class FileSubItem(BaseModel):
    """A matching line shown under a file result."""

    model_config = ConfigDict(frozen=True)

    text: str
    row: int
    col: int = 0
    positions: list[int] = Field(default_factory=list)


class FileItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    engine_type: EngineType = EngineType.LEXICAL
    path: str
    matched_terms: list[str] = Field(default_factory=list)
    sub_items: list[FileSubItem] = Field(default_factory=list)
    preview_content: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def basename(self) -> str:
        return get_basename(self.path)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def extension(self) -> str:
        return get_extension(self.path)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def folder_path(self) -> str:
        return get_folder_path(self.path)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def file_type(self) -> FileType:
        return get_file_type(self.path)


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["line"] = "line"
    line: HighlightedLine
    context: str = ""


SearchItem = Annotated[FileItem | LineItem, Field(discriminator="kind")]


class SearchResult(BaseModel):
    """Value object for one search answer."""

    model_config = ConfigDict(frozen=True)

    curr_path: str | None = None
    items: list[SearchItem] = Field(default_factory=list)
    status: SearchStatus = SearchStatus.OK

    @classmethod
    def unsupported(cls, curr_path: str | None) -> "SearchResult":
        return cls(curr_path=curr_path, status=SearchStatus.UNSUPPORTED)

    @classmethod
    def not_ready(cls, curr_path: str | None = None) -> "SearchResult":
        return cls(curr_path=curr_path, status=SearchStatus.NOT_READY)
