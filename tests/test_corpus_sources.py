"""Tests for the HTTP and local-directory corpus sources."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from docchat.core.errors import UpstreamServiceError
from docchat.infrastructure.document_loaders import HttpCorpusSource, MarkdownDirectorySource


def test_markdown_directory_reads_md_files_in_order(tmp_path):
    (tmp_path / "b.md").write_text("# B\nSource: https://x/b\n\nbody b", encoding="utf-8")
    (tmp_path / "a.md").write_text("# A\nSource: https://x/a\n\nbody a", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    documents = MarkdownDirectorySource(tmp_path).load()

    assert [origin.rsplit("/", 1)[-1] for origin, _ in documents] == ["a.md", "b.md"]
    assert documents[0][1].startswith("# A")


def test_missing_directory_is_empty(tmp_path):
    assert MarkdownDirectorySource(tmp_path / "nope").load() == []


@patch("docchat.infrastructure.document_loaders.http_source.requests.get")
def test_http_source_returns_body(mock_get):
    mock_get.return_value = MagicMock(status_code=200, text="# Page\nSource: https://x/p\n\nbody")

    source = HttpCorpusSource("https://docs.example.com/llms-full.txt")

    assert source.load() == [(source.url, "# Page\nSource: https://x/p\n\nbody")]


@patch("docchat.infrastructure.document_loaders.http_source.requests.get")
def test_http_source_errors(mock_get):
    source = HttpCorpusSource("https://docs.example.com/llms-full.txt")

    mock_get.return_value = MagicMock(status_code=503, text="")
    with pytest.raises(UpstreamServiceError) as exc_info:
        source.load()
    assert exc_info.value.status == 503

    mock_get.side_effect = requests.ConnectionError("refused")
    with pytest.raises(UpstreamServiceError):
        source.load()
