"""Centralized configuration for vault-search using Pydantic Settings."""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every value can be overridden with a ``VAULT_SEARCH_`` prefixed variable
    (for example ``VAULT_SEARCH_FUZZY_PROPORTION=0.3``) or through a ``.env``
    file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULT_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Locations
    vault_root: Path | None = Field(default=None, description="Root directory of the vault to index")
    assets_dir: Path | None = Field(
        default=None, description="Directory holding jieba-dict.txt and the stop-word lists"
    )
    snapshot_path: Path | None = Field(
        default=None, description="Where the index snapshot is persisted (defaults inside the vault)"
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")

    # Tokenizer
    enable_stop_words_en: bool = Field(default=True, description="Filter English stop words")
    enable_stop_words_zh: bool = Field(default=False, description="Filter Chinese stop words")
    enable_chinese_patch: bool = Field(default=True, description="Segment CJK text with jieba")
    split_hyphens: bool = Field(default=True, description="Treat hyphens inside words as token boundaries")

    # Query evaluation
    min_term_length_for_prefix: int = Field(
        default=3, ge=1, description="Minimum query term length before fuzzy matching kicks in"
    )
    min_term_length_for_prefix_search: int = Field(
        default=2, ge=1, description="Minimum query term length before prefix matching kicks in"
    )
    fuzzy_proportion: float = Field(
        default=0.2, ge=0.0, le=1.0, description="Edit distance budget as a proportion of term length"
    )

    # Field weights
    weight_filename: float = Field(default=3.0, gt=0, description="Weight of the basename field")
    weight_folder: float = Field(default=2.0, gt=0, description="Weight of the folder field")
    weight_tag_text: float = Field(default=1.15, gt=0, description="Weight of aliases and tags")
    weight_heading: float = Field(default=1.27, gt=0, description="Weight of markdown headings")

    # Result caps
    max_item_results: int = Field(default=30, ge=1, description="Maximum files returned by vault search")
    max_line_results: int = Field(default=100, ge=1, description="Maximum lines returned by in-file search")
    max_sub_items: int = Field(default=30, ge=1, description="Maximum sub-items per file result")

    # Highlighting
    paragraph_context_lines: int = Field(
        default=5, ge=1, description="Lines of paragraph context gathered on each side when expanding"
    )
    sub_item_chars: int = Field(default=120, ge=10, description="Width of a compact sub-item excerpt")

    # Change tracking
    debounce_seconds: float = Field(default=3.0, ge=0.0, description="Quiet period before re-indexing a file")
    exclude_extensions: str = Field(default="", description="Comma-separated file extensions to skip")

    @model_validator(mode="after")
    def _check_term_lengths(self) -> "Settings":
        if self.min_term_length_for_prefix < self.min_term_length_for_prefix_search:
            raise ValueError(
                "min_term_length_for_prefix must not be smaller than min_term_length_for_prefix_search; "
                "fuzzy matching only applies to terms long enough for prefix search."
            )
        return self

    def document_weights(self) -> dict[str, float]:
        """Return the sparse field-weight mapping used for scoring."""
        return {
            "basename": self.weight_filename,
            "folder": self.weight_folder,
            "aliases": self.weight_tag_text,
            "headings": self.weight_heading,
        }

    def get_exclude_extensions(self) -> list[str]:
        """Get normalized extensions (lowercase, no leading dot) to skip."""
        if not self.exclude_extensions:
            return []
        return [ext.strip().lower().lstrip(".") for ext in self.exclude_extensions.split(",") if ext.strip()]

    def resolve_snapshot_path(self) -> Path | None:
        """Return the snapshot location, defaulting to a hidden file in the vault."""
        if self.snapshot_path is not None:
            return self.snapshot_path
        if self.vault_root is None:
            return None
        return self.vault_root / ".vault-search" / "index.json"
