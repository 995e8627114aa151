"""Tests for the freecoding CLI - TEST801-TEST805"""

import io
import shlex

import pytest

from freecoding import __version__
from freecoding.cli import build_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FREECODING_BACKEND_CMD", "FREECODING_LANGUAGE", "FREECODING_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


# TEST801: --version prints the package version
def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


# TEST802: Chat session against a spawned backend, with a language switch
def test_chat_round_trip(echo_backend, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("hello\n/lang fr\nsalut\n/quit\n"))

    code = main(["--backend", shlex.join(echo_backend)])

    out = capsys.readouterr().out
    assert code == 0
    assert "Bot: [en] hello" in out
    assert "Bot: [fr] salut" in out
    assert "Document loaded:\nanswered: hello" in out


# TEST803: Backend that dies mid-question ends the session with an error code
def test_backend_death(echo_backend, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("crash\nnever sent\n"))

    code = main(["--backend", shlex.join(echo_backend)])

    out = capsys.readouterr().out
    assert code == 1
    assert "Backend server died with code: 3" in out


# TEST804: Missing backend executable is reported, not raised
def test_missing_backend(capsys):
    code = main(["--backend", "/nonexistent/freecoding/backend"])
    assert code == 1
    assert "failed to start backend" in capsys.readouterr().err


# TEST805: An unsendable question is reported and the session carries on
def test_unsendable_question(echo_backend, monkeypatch, capsys):
    monkeypatch.setattr(
        "sys.stdin", io.StringIO("quoting FREECODING_QUESTION END here\nhello\n/quit\n")
    )

    code = main(["--backend", shlex.join(echo_backend)])

    captured = capsys.readouterr()
    assert code == 0
    assert "cannot send question" in captured.err
    assert "Bot: [en] hello" in captured.out
