"""YAML front matter utilities for vault notes.

Notes may start with a YAML block delimited by ``---`` lines:

    ---
    aliases: [Search engine, 搜索]
    tags: [project/search]
    ---
    # Vault search

    Body text...
"""

import re
from typing import Any

import yaml


DELIMITER = "---"

_FRONT_MATTER_PATTERN = re.compile(
    rf"\A{re.escape(DELIMITER)}[ \t]*\r?\n(.*?)(?:\r?\n)?^{re.escape(DELIMITER)}[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def parse_front_matter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML front matter from markdown content.

    Args:
        content: Full note content including front matter

    Returns:
        Tuple of (front_matter_dict, markdown_content)
        If no front matter found, returns (empty dict, original content)

    Example:
        >>> metadata, markdown = parse_front_matter("---\\naliases: [x]\\n---\\n# Content")
        >>> metadata["aliases"]
        ['x']
        >>> markdown
        '# Content'
    """
    match = _FRONT_MATTER_PATTERN.match(content)
    if not match:
        return {}, content

    markdown_content = content[match.end() :]
    try:
        metadata = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        # Invalid YAML is treated as body text
        return {}, content

    if not isinstance(metadata, dict):
        return {}, content

    return metadata, markdown_content


def _as_strings(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        # "a, b" and "a b" are both accepted for tags
        return [part for part in re.split(r"[,\s]+", value) if part]
    if isinstance(value, (list, tuple, set)):
        result: list[str] = []
        for item in value:
            if item is not None:
                result.append(str(item).strip())
        return [item for item in result if item]
    return [str(value)]


def collect_aliases(metadata: dict[str, Any]) -> str | None:
    """Join ``aliases``/``alias`` and ``tags``/``tag`` values into one searchable string.

    Tags lose their leading ``#``. Returns None when nothing is declared.
    """
    values: list[str] = []
    for key in ("aliases", "alias"):
        raw = metadata.get(key)
        if isinstance(raw, str):
            values.append(raw.strip())
        else:
            values.extend(_as_strings(raw))
    for key in ("tags", "tag"):
        values.extend(tag.lstrip("#") for tag in _as_strings(metadata.get(key)))
    values = [value for value in values if value]
    return " ".join(values) if values else None
