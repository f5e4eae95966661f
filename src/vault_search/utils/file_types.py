"""Path helpers shared by the vault adapter and result models.

Vault paths are relative, ``/`` separated strings such as ``Projects/alpha.md``.
"""

from enum import Enum
from pathlib import PurePosixPath


PLAIN_TEXT_EXTENSIONS = frozenset({"md", "txt"})
_IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "bmp", "svg", "webp"})


class FileType(str, Enum):
    PLAIN_TEXT = "plain_text"
    IMAGE = "image"
    PDF = "pdf"
    OTHER = "other"


def get_extension(path: str) -> str:
    """Lowercase extension without the dot, ``""`` when there is none."""
    return PurePosixPath(path).suffix.lstrip(".").lower()


def get_file_type(path: str) -> FileType:
    extension = get_extension(path)
    if extension in PLAIN_TEXT_EXTENSIONS:
        return FileType.PLAIN_TEXT
    if extension in _IMAGE_EXTENSIONS:
        return FileType.IMAGE
    if extension == "pdf":
        return FileType.PDF
    return FileType.OTHER


def get_basename(path: str) -> str:
    return PurePosixPath(path).stem


def get_folder_path(path: str) -> str:
    parent = PurePosixPath(path).parent.as_posix()
    return "" if parent == "." else parent
