"""Corpus source implementations."""
from .http_source import HttpCorpusSource
from .markdown_dir_source import MarkdownDirectorySource

__all__ = ["HttpCorpusSource", "MarkdownDirectorySource"]
