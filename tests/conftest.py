"""Shared test fixtures."""

from __future__ import annotations

import io
import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image

from alttextgen.config import GatewayConfig, StorageConfig
from alttextgen.container import ServiceContainer
from alttextgen.providers.catalog import PROVIDERS
from alttextgen.services import build_container
from alttextgen.storage import Attachment, LibraryFile, MediaLibrary, OptionStore


@pytest.fixture(autouse=True)
def _no_env_api_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real vendor keys in the environment out of the tests."""
    for info in PROVIDERS.values():
        monkeypatch.delenv(info.env_var, raising=False)


@pytest.fixture
def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), "red").save(buf, format="PNG")
    return buf.getvalue()


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


@pytest.fixture
def oversized_png() -> bytes:
    """PNG header declaring 30000x30000 pixels, past Pillow's bomb limit."""
    header = struct.pack(">IIBBBBB", 30000, 30000, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(b""))
        + _png_chunk(b"IEND", b"")
    )


@pytest.fixture
def media(tmp_path: Path, png_bytes: bytes) -> MediaLibrary:
    """Library with attachment 42 (a PNG on disk) and 7 (file missing)."""
    (tmp_path / "bike.png").write_bytes(png_bytes)
    library = LibraryFile(attachments=[
        Attachment(id=42, path="bike.png"),
        Attachment(id=7, path="gone.jpg"),
    ])
    lib = MediaLibrary(library, path=tmp_path / "library.yaml")
    lib.save()
    return lib


@pytest.fixture
def options(tmp_path: Path) -> OptionStore:
    return OptionStore(
        {
            "ai_alt_text_provider": "gemini",
            "ai_alt_text_api_key_gemini": "gemini-test-key",
        },
        path=tmp_path / "options.yaml",
    )


@pytest.fixture
def config(tmp_path: Path) -> GatewayConfig:
    return GatewayConfig(
        storage=StorageConfig(
            options_path=tmp_path / "options.yaml",
            library_path=tmp_path / "library.yaml",
        ),
        users={
            "admin": ["upload_files", "manage_options"],
            "editor": ["upload_files"],
            "viewer": [],
        },
        access_tokens={
            "admin": "admin-token",
            "editor": "editor-token",
            "viewer": "viewer-token",
        },
    )


@pytest.fixture
def container(config: GatewayConfig, options: OptionStore, media: MediaLibrary) -> ServiceContainer:
    return build_container(config, options=options, media=media)
