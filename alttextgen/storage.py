"""Durable option storage and the media library.

Both stores are plain YAML files.  ``OptionStore`` is a flat key-value
map of settings; ``MediaLibrary`` indexes image attachments by integer id
and keeps their per-image metadata (alt text, AI authorship marker).
Mutations stay in memory until ``save()`` is called.
"""

from __future__ import annotations

import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field

from alttextgen.providers.catalog import META_ALT_GENERATED, META_ALT_TEXT

logger = logging.getLogger(__name__)

_FALLBACK_MIME = "image/jpeg"


def _dump_yaml(data: Any, path: Path) -> None:
    yaml_str = yaml.dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml_str, encoding="utf-8")


def detect_mime_type(data: bytes, path: Path | None = None) -> str:
    """Media type of an image, from its header bytes or else its file name.

    Pillow only reads the header here; pixel data is never decoded.  A
    header that declares an oversized image still yields a type.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
        if mime:
            return mime
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
        pass
    if path is not None:
        guessed, _ = mimetypes.guess_type(path.name)
        if guessed and guessed.startswith("image/"):
            return guessed
    return _FALLBACK_MIME


class OptionStore:
    """Flat key-value settings, optionally persisted to a YAML file."""

    def __init__(self, values: dict[str, Any] | None = None, *, path: Path | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self.path = path

    @classmethod
    def load(cls, path: Path) -> OptionStore:
        """Load options from *path*; a missing file gives an empty store."""
        values: dict[str, Any] = {}
        if path.is_file():
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"Option file must contain a mapping: {path}")
            values = raw
        return cls(values, path=path)

    def get(self, name: str, default: str = "") -> str:
        value = self._values.get(name)
        if value is None:
            return default
        return str(value)

    def update(self, name: str, value: str) -> None:
        self._values[name] = value

    def delete(self, name: str) -> None:
        self._values.pop(name, None)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def save(self) -> None:
        if self.path is None:
            return
        _dump_yaml(self._values, self.path)


class Attachment(BaseModel):
    """One image registered in the media library."""

    id: int
    path: str
    mime_type: str = ""
    meta: dict[str, str] = Field(default_factory=dict)


class LibraryFile(BaseModel):
    """On-disk shape of ``library.yaml``."""

    attachments: list[Attachment] = Field(default_factory=list)


@dataclass
class ImageData:
    """Raw image bytes handed to a provider."""

    data: bytes
    mime_type: str
    path: Path


class MediaLibrary:
    """Image attachments by id, with per-image metadata.

    Relative attachment paths are resolved against the library file's
    directory.

    Usage::

        library = MediaLibrary.load(Path("library.yaml"))
        image = library.get_image(42)
        library.update_meta(42, META_ALT_TEXT, "A red bicycle.")
        library.save()
    """

    def __init__(self, library: LibraryFile | None = None, *, path: Path | None = None) -> None:
        self._library = library or LibraryFile()
        self.path = path

    @classmethod
    def load(cls, path: Path) -> MediaLibrary:
        if not path.is_file():
            return cls(path=path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls(LibraryFile.model_validate(raw), path=path)

    def save(self) -> None:
        if self.path is None:
            return
        _dump_yaml(self._library.model_dump(mode="json"), self.path)

    @property
    def attachments(self) -> list[Attachment]:
        return list(self._library.attachments)

    def get(self, attachment_id: int) -> Attachment | None:
        for attachment in self._library.attachments:
            if attachment.id == attachment_id:
                return attachment
        return None

    def attached_file(self, attachment_id: int) -> Path | None:
        """Filesystem path of an attachment, or None if the id is unknown."""
        attachment = self.get(attachment_id)
        if attachment is None:
            return None
        file_path = Path(attachment.path).expanduser()
        if not file_path.is_absolute() and self.path is not None:
            file_path = self.path.parent / file_path
        return file_path

    def get_image(self, attachment_id: int) -> ImageData | None:
        """Read an attachment's bytes; None if unknown or the file is gone."""
        file_path = self.attached_file(attachment_id)
        if file_path is None or not file_path.is_file():
            logger.warning("Image file missing | image_id=%s path=%s", attachment_id, file_path)
            return None
        data = file_path.read_bytes()
        attachment = self.get(attachment_id)
        mime_type = (attachment.mime_type if attachment else "") or detect_mime_type(data, file_path)
        return ImageData(data=data, mime_type=mime_type, path=file_path)

    def add(self, file_path: Path, *, mime_type: str = "") -> Attachment:
        """Register a new image and return its attachment (next free id)."""
        next_id = max((a.id for a in self._library.attachments), default=0) + 1
        attachment = Attachment(id=next_id, path=str(file_path), mime_type=mime_type)
        self._library.attachments.append(attachment)
        return attachment

    def get_meta(self, attachment_id: int, key: str, default: str = "") -> str:
        attachment = self.get(attachment_id)
        if attachment is None:
            return default
        return attachment.meta.get(key, default)

    def update_meta(self, attachment_id: int, key: str, value: str) -> bool:
        """Set one metadata value; returns False if the id is unknown."""
        attachment = self.get(attachment_id)
        if attachment is None:
            return False
        attachment.meta[key] = value
        return True

    def status(self, attachment_id: int) -> dict[str, Any] | None:
        """Alt text state of an attachment, as shown next to its generate button."""
        attachment = self.get(attachment_id)
        if attachment is None:
            return None
        ai_generated = attachment.meta.get(META_ALT_GENERATED) == "1"
        return {
            "id": attachment.id,
            "alt": attachment.meta.get(META_ALT_TEXT, ""),
            "ai_generated": ai_generated,
            "action": "regenerate" if ai_generated else "generate",
        }
