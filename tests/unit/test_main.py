# tests/unit/test_main.py
"""Tests for the CLI entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from docreview.core.models import StageName
from docreview.main import _build_parser, main


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logging.getLogger("docreview").handlers.clear()


class TestParser:
    def test_analyze_defaults(self):
        args = _build_parser().parse_args(["analyze", "doc.txt", "--api-key", "k"])
        assert args.command == "analyze"
        assert args.file == Path("doc.txt")
        assert args.provider == "openai"
        assert args.custom_url is None
        assert not args.no_progress
        assert args.calls_log is None

    def test_analyze_custom(self):
        args = _build_parser().parse_args([
            "analyze", "doc.pdf", "--provider", "custom", "--api-key", "k",
            "--custom-url", "http://llm.local/v1/chat", "--custom-model", "m1",
            "--no-progress", "--calls-log", "calls.jsonl",
        ])
        assert args.provider == "custom"
        assert args.custom_url == "http://llm.local/v1/chat"
        assert args.custom_model == "m1"
        assert args.no_progress
        assert args.calls_log == Path("calls.jsonl")

    def test_unknown_provider_rejected(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["analyze", "doc.txt", "--provider", "acme", "--api-key", "k"])

    def test_api_key_required(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["analyze", "doc.txt"])

    def test_serve(self):
        args = _build_parser().parse_args(["serve", "--port", "8080"])
        assert args.port == 8080
        assert args.host is None


class TestMain:
    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        assert main(["analyze", str(tmp_path / "absent.txt"), "--api-key", "k"]) == 1

    def test_analyze_prints_frames(self, tmp_path, capsys, make_fake_client, sample_document):
        doc = tmp_path / "doc.txt"
        doc.write_text(sample_document, encoding="utf-8")
        calls_log = tmp_path / "calls.jsonl"
        fake = make_fake_client()

        with patch("docreview.llm.client.ProviderClient", lambda settings: fake):
            code = main([
                "analyze", str(doc), "--api-key", "k", "--no-progress",
                "--calls-log", str(calls_log),
            ])

        assert code == 0
        frames = [
            json.loads(line[len("data: "):])
            for line in capsys.readouterr().out.splitlines() if line
        ]
        assert [f["type"] for f in frames].count("stage_completed") == 4
        assert "stage_progress" not in {f["type"] for f in frames}
        assert frames[-1]["type"] == "complete"
        assert len(calls_log.read_text().strip().splitlines()) == 5

    def test_analyze_prints_progress_by_default(self, tmp_path, capsys, make_fake_client, sample_document):
        doc = tmp_path / "doc.txt"
        doc.write_text(sample_document, encoding="utf-8")
        fake = make_fake_client()

        with patch("docreview.llm.client.ProviderClient", lambda settings: fake):
            assert main(["analyze", str(doc), "--api-key", "k"]) == 0

        types = [
            json.loads(line[len("data: "):])["type"]
            for line in capsys.readouterr().out.splitlines() if line
        ]
        assert "stage_progress" in types
        assert types[-1] == "complete"

    def test_analyze_failure_exit_code(self, tmp_path, capsys, make_fake_client, sample_document):
        doc = tmp_path / "doc.txt"
        doc.write_text(sample_document, encoding="utf-8")
        fake = make_fake_client(fail_stages={StageName.DESIGN})

        with patch("docreview.llm.client.ProviderClient", lambda settings: fake):
            code = main(["analyze", str(doc), "--api-key", "k"])

        assert code == 1
        last = capsys.readouterr().out.strip().splitlines()[-1]
        assert json.loads(last[len("data: "):])["type"] == "error"
