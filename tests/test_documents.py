"""Tests for document persistence."""

import asyncio
import os

import pytest

from docpilot.errors import PersistenceError
from docpilot.sessions.documents import DocumentWriter, slugify


@pytest.fixture
def writer():
    return DocumentWriter()


class TestSlugify:
    def test_basic(self):
        assert slugify("Forex Trading Trainer") == "forex-trading-trainer"

    def test_punctuation(self):
        assert slugify("  Auth: JWT & OAuth2!  ") == "auth-jwt-oauth2"

    def test_empty(self):
        assert slugify("!!!") == "document"

    def test_max_length(self):
        slug = slugify("word " * 40)
        assert len(slug) <= 60
        assert not slug.endswith("-")


class TestDocumentWriter:
    def test_read_missing_is_empty(self, writer, tmp_path):
        assert asyncio.run(writer.read(tmp_path / "nope.md")) == ""

    def test_write_creates_directories(self, writer, tmp_path):
        path = tmp_path / "docs" / "prd" / "new.md"
        asyncio.run(writer.write(path, "# New\n"))

        assert path.read_text() == "# New\n"
        assert writer.exists(path)

    def test_overwrite(self, writer, tmp_path):
        path = tmp_path / "doc.md"
        path.write_text("old")
        asyncio.run(writer.write(path, "new"))

        assert asyncio.run(writer.read(path)) == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["doc.md"]

    def test_failed_replace_keeps_original(self, writer, tmp_path, monkeypatch):
        path = tmp_path / "doc.md"
        path.write_text("original")

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)
        with pytest.raises(PersistenceError) as exc:
            asyncio.run(writer.write(path, "partial"))
        monkeypatch.undo()

        assert path.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["doc.md"]
        assert exc.value.path == str(path)

    def test_unwritable_location(self, writer, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")

        with pytest.raises(PersistenceError):
            asyncio.run(writer.write(blocker / "doc.md", "content"))
