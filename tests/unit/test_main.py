# tests/unit/test_main.py — v1
"""Tests for main.py — CLI parser, commands and vector file loading."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from ctxvector import main as cli
from ctxvector.core.models import DenseSearchRequest, LexicalSearchRequest


class TestParser:
    def test_search_args(self, tmp_path):
        args = cli._build_parser().parse_args(
            ["search", "code", "--text", "parse", "-n", "5", "--filter", "fileExtension in ['.py']"]
        )
        assert args.command == "search"
        assert args.collection == "code"
        assert args.text == "parse"
        assert args.limit == 5
        assert args.filter == "fileExtension in ['.py']"
        assert args.func is cli._cmd_search

    def test_query_args(self):
        args = cli._build_parser().parse_args(["query", "code", "--fields", "id, relativePath"])
        assert args.fields == "id, relativePath"
        assert args.limit is None

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            cli._build_parser().parse_args(["--version"])
        assert exc.value.code == 0
        assert "ctxvector" in capsys.readouterr().out


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_configuration_error(self, monkeypatch, capsys):
        monkeypatch.setenv("CHROMA_URL", "ftp://nowhere")
        assert cli.main(["collections"]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_collections(self, monkeypatch, capsys, fake_store):
        monkeypatch.delenv("CHROMA_URL", raising=False)
        fake_store.collections = {"code": {}, "docs": {}}
        with patch(
            "ctxvector.rag.vector_store.vector_store_factory.create_vector_store",
            new=AsyncMock(return_value=fake_store),
        ), patch("ctxvector.logging.logger.setup_logging_from_settings"):
            assert cli.main(["collections"]) == 0
        assert capsys.readouterr().out.split() == ["code", "docs"]

    def test_backend_error_returns_1(self, monkeypatch):
        monkeypatch.delenv("CHROMA_URL", raising=False)
        with patch(
            "ctxvector.rag.vector_store.vector_store_factory.create_vector_store",
            new=AsyncMock(side_effect=RuntimeError("down")),
        ), patch("ctxvector.logging.logger.setup_logging_from_settings"):
            assert cli.main(["collections"]) == 1


class TestCommands:
    @pytest.mark.asyncio
    async def test_search_builds_requests(self, tmp_path, fake_store, settings, make_hit, capsys):
        vector_file = tmp_path / "v.json"
        vector_file.write_text("[0.5, 1, 0.25]", encoding="utf-8")
        fake_store.dense_hits = [make_hit("a", 0.25)]
        fake_store.lexical_hits = [make_hit("b", 0.5)]
        args = cli._build_parser().parse_args(
            ["search", "code", "--text", "parse", "--vector-file", str(vector_file), "-n", "3"]
        )

        with patch("ctxvector.api.facade.hybrid_search", new=AsyncMock(return_value=[])) as hs:
            assert await cli._cmd_search(args, fake_store, settings) == 0
        requests = hs.call_args.args[2]
        assert isinstance(requests[0], DenseSearchRequest)
        assert requests[0].vector == [0.5, 1.0, 0.25]
        assert isinstance(requests[1], LexicalSearchRequest)
        assert all(r.limit == 3 for r in requests)

    @pytest.mark.asyncio
    async def test_search_prints_json_lines(self, fake_store, settings, make_hit, capsys):
        fake_store.lexical_hits = [make_hit("a", 0.25), make_hit("b", 0.5)]
        args = cli._build_parser().parse_args(["search", "code", "--text", "parse"])
        assert await cli._cmd_search(args, fake_store, settings) == 0
        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [line["id"] for line in lines] == ["a", "b"]
        assert lines[0]["score"] == 0.75
        assert lines[0]["location"] == "src/a.py:1-10"

    @pytest.mark.asyncio
    async def test_search_needs_a_query(self, fake_store, settings):
        args = cli._build_parser().parse_args(["search", "code"])
        assert await cli._cmd_search(args, fake_store, settings) == 1
        assert fake_store.calls == []

    @pytest.mark.asyncio
    async def test_query_prints_rows(self, fake_store, settings, make_hit, capsys):
        fake_store.rows["code"] = [make_hit("a", None)]
        args = cli._build_parser().parse_args(
            ["query", "code", "--filter", "fileExtension in ['.py']", "--fields", "id,relativePath"]
        )
        assert await cli._cmd_query(args, fake_store, settings) == 0
        assert json.loads(capsys.readouterr().out) == {"id": "a", "relativePath": "src/a.py"}
        assert fake_store.calls[-1][1]["where"] == {"fileExtension": {"$in": [".py"]}}

    @pytest.mark.asyncio
    async def test_drop(self, fake_store, settings):
        fake_store.collections["code"] = {}
        args = cli._build_parser().parse_args(["drop", "code"])
        assert await cli._cmd_drop(args, fake_store, settings) == 0
        assert "code" not in fake_store.collections


class TestLoadVector:
    def test_valid(self, tmp_path):
        path = tmp_path / "v.json"
        path.write_text("[1, 2.5]", encoding="utf-8")
        assert cli._load_vector(path) == [1.0, 2.5]

    def test_missing(self, tmp_path):
        assert cli._load_vector(tmp_path / "nope.json") is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "v.json"
        path.write_text("[1,", encoding="utf-8")
        assert cli._load_vector(path) is None

    def test_not_numbers(self, tmp_path):
        path = tmp_path / "v.json"
        path.write_text('["a", "b"]', encoding="utf-8")
        assert cli._load_vector(path) is None
