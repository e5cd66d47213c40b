"""Tests for the command-line interface."""

import argparse
from unittest.mock import MagicMock, patch

import pytest

from docchat.core.models.indexing import IndexResult
from docchat.core.protocols.embedder import EmbedderProtocol
from docchat.core.services.ingest_service import IngestService
from docchat.presentation.cli import build_parser, cmd_ask, cmd_ingest, cmd_search


def test_search_command():
    args = build_parser().parse_args(["search", "rate limit", "--strategy", "keyword"])

    assert args.func is cmd_search
    assert args.query == "rate limit"
    assert args.strategy == "keyword"


def test_ask_defaults_to_auto():
    args = build_parser().parse_args(["ask", "How do I configure auth?"])

    assert args.func is cmd_ask
    assert args.strategy == "auto"


def test_invalid_strategy_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["search", "q", "--strategy", "fuzzy"])


def test_command_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_ingest_warms_up_embedder_before_running(capsys):
    calls = []
    embedder = MagicMock()
    embedder.warmup.side_effect = lambda: calls.append("warmup")
    ingest = MagicMock()

    def run():
        calls.append("run")
        return IndexResult(success=True, chunks_created=3, snapshot="v1")

    ingest.run.side_effect = run
    services = {EmbedderProtocol: embedder, IngestService: ingest}

    with patch("docchat.presentation.cli.container") as container:
        container.resolve.side_effect = services.__getitem__
        code = cmd_ingest(argparse.Namespace())

    assert code == 0
    assert calls == ["warmup", "run"]
    assert '"snapshot": "v1"' in capsys.readouterr().out
