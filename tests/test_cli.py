"""Tests for the command line interface."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from alttextgen import __version__
from alttextgen.cli import app
from alttextgen.storage import MediaLibrary, OptionStore
from tests.utils.vendors import gemini_response, gemini_text

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, media: MediaLibrary) -> Path:
    OptionStore(
        {"ai_alt_text_provider": "gemini", "ai_alt_text_api_key_gemini": "k"},
        path=tmp_path / "options.yaml",
    ).save()
    path = tmp_path / "alttextgen.yaml"
    path.write_text(
        "users:\n  admin: [upload_files, manage_options]\n  guest: []\nlog_level: WARNING\n",
        encoding="utf-8",
    )
    return path


def _invoke(config_file: Path, *args: str):  # type: ignore[no-untyped-def]
    return runner.invoke(app, ["--config", str(config_file), *args])


class TestCLI:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_generate(self, config_file: Path, tmp_path: Path) -> None:
        post = AsyncMock(return_value=gemini_response(gemini_text("A red square.")))
        with patch("httpx.AsyncClient.post", post):
            result = _invoke(config_file, "generate", "42")

        assert result.exit_code == 0, result.output
        assert "A red square." in result.output
        library = MediaLibrary.load(tmp_path / "library.yaml")
        assert library.get_meta(42, "_ai_alt_generated") == "1"

    def test_generate_invalid_id(self, config_file: Path) -> None:
        result = _invoke(config_file, "generate", "zero")
        assert result.exit_code == 1
        assert "400" in result.output

    def test_generate_without_capability(self, config_file: Path) -> None:
        result = _invoke(config_file, "generate", "42", "--user", "guest")
        assert result.exit_code == 1
        assert "403" in result.output

    def test_status(self, config_file: Path) -> None:
        result = _invoke(config_file, "status", "42")
        assert result.exit_code == 0
        assert "generate" in result.output

    def test_status_unknown(self, config_file: Path) -> None:
        assert _invoke(config_file, "status", "999").exit_code == 1

    def test_add_image(self, config_file: Path, tmp_path: Path, png_bytes: bytes) -> None:
        image = tmp_path / "new.png"
        image.write_bytes(png_bytes)
        result = _invoke(config_file, "add-image", str(image))
        assert result.exit_code == 0
        assert MediaLibrary.load(tmp_path / "library.yaml").get(43) is not None

    def test_providers(self, config_file: Path) -> None:
        result = _invoke(config_file, "providers")
        assert result.exit_code == 0
        assert "Gemini" in result.output
        assert "OpenAI" in result.output

    def test_settings_set_and_show(self, config_file: Path, tmp_path: Path) -> None:
        result = _invoke(config_file, "settings", "set", "ai_alt_text_provider", "openai")
        assert result.exit_code == 0, result.output
        assert OptionStore.load(tmp_path / "options.yaml").get("ai_alt_text_provider") == "openai"

        result = _invoke(config_file, "settings", "show")
        assert result.exit_code == 0
        assert "provider=openai" in result.output

    def test_settings_set_invalid(self, config_file: Path) -> None:
        result = _invoke(config_file, "settings", "set", "ai_alt_text_language", "xx")
        assert result.exit_code == 1
        assert "Invalid setting" in result.output

    def test_bad_config(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("ai: [unclosed\n", encoding="utf-8")
        result = runner.invoke(app, ["--config", str(bad), "providers"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output
