"""
Schema definition for the lexical index.

Each indexed document is split into weighted text fields (BM25F style). The
weights form the sparse ``DocumentWeight`` mapping: fields absent from the
mapping weigh 1.0.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TextField:
    """
    Analyzed text field.

    Args:
        name: Field name (e.g., "basename", "content")
        boost: Field weight in scoring (default: 1.0)
    """

    name: str
    boost: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "boost": self.boost}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TextField:
        return cls(name=str(data["name"]), boost=float(data.get("boost", 1.0)))


@dataclass
class Schema:
    """Ordered set of fields plus the field that identifies a document."""

    fields: list[TextField]
    unique_field: str = "path"
    name: str = "vault"

    def __post_init__(self) -> None:
        self._field_map: dict[str, TextField] = {f.name: f for f in self.fields}
        for field in self.fields:
            if field.boost <= 0:
                msg = f"Field '{field.name}' must have a positive weight, got {field.boost}"
                raise ValueError(msg)

    def __getitem__(self, name: str) -> TextField:
        return self._field_map[name]

    def __contains__(self, name: str) -> bool:
        return name in self._field_map

    def __iter__(self) -> Iterator[TextField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get_boost(self, field_name: str) -> float:
        """Get the weight for a field, 1.0 when unknown."""
        if field_name in self._field_map:
            return self._field_map[field_name].boost
        return 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "unique_field": self.unique_field,
            "fields": [f.to_dict() for f in self.fields],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Schema:
        return cls(
            fields=[TextField.from_dict(f) for f in data["fields"]],
            unique_field=data.get("unique_field", "path"),
            name=data.get("name", "vault"),
        )


DEFAULT_DOCUMENT_WEIGHTS: dict[str, float] = {
    "basename": 3.0,
    "folder": 2.0,
    "aliases": 1.15,
    "headings": 1.27,
}

VAULT_FIELDS = ("basename", "folder", "aliases", "headings", "content")


def create_vault_schema(weights: Mapping[str, float] | None = None) -> Schema:
    """
    Create the schema for vault notes.

    Fields:
    - basename: File name without extension (default weight 3)
    - folder: Parent folder path (default weight 2)
    - aliases: Front-matter aliases and tags (default weight 1.15)
    - headings: Markdown headings extracted from content (default weight 1.27)
    - content: Note body (weight 1)
    """
    resolved = dict(DEFAULT_DOCUMENT_WEIGHTS)
    if weights:
        resolved.update(weights)
    return Schema(fields=[TextField(name, boost=resolved.get(name, 1.0)) for name in VAULT_FIELDS])
