"""Tests for CLI argument parsing and the serve command."""

import pytest
from fastapi import FastAPI

from stealth_search import cli


def test_search_arguments() -> None:
    args = cli.build_parser().parse_args(["search", "example query", "--limit", "5"])

    assert args.command == "search"
    assert args.query == "example query"
    assert args.limit == 5
    assert args.headless is None


def test_extract_arguments() -> None:
    args = cli.build_parser().parse_args(
        ["--no-headless", "extract", "https://example.com", "--full", "--no-images"]
    )

    assert args.command == "extract"
    assert args.full is True
    assert args.images is False
    assert args.headless is False


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_serve_runs_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setenv("PROXY_ENABLED", "false")
    monkeypatch.setattr(
        cli.uvicorn,
        "run",
        lambda app, host, port: calls.append((app, host, port)),
    )

    cli.main(["serve", "--port", "8080"])

    app, host, port = calls[0]
    assert isinstance(app, FastAPI)
    assert (host, port) == ("0.0.0.0", 8080)
