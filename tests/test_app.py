"""Tests for the shared entry point."""

import argparse

import pytest

from argpane import app
from argpane.models import ExitCode
from argpane.settings import Settings


@pytest.fixture
def parser():
    parser = argparse.ArgumentParser(prog="demo")
    parser.add_argument("name")
    parser.add_argument("--loud", action="store_true")
    return parser


@pytest.fixture(autouse=True)
def no_logger_setup(mocker):
    return mocker.patch.object(app, "init_logger")


def test_worker_calls_the_program(parser, monkeypatch):
    monkeypatch.setenv("ARGPANE_WORKER", "1")
    monkeypatch.setattr("sys.argv", ["demo", "bob", "--loud"])
    assert app.is_worker()
    assert app.run_parser(parser, lambda args: (args.name, args.loud)) == ("bob", True)


def test_front_end_runs_the_host(parser, monkeypatch, mocker):
    monkeypatch.delenv("ARGPANE_WORKER", raising=False)
    run = mocker.patch.object(app.TerminalHost, "run", return_value=ExitCode.SUCCESS)
    func = mocker.Mock()
    assert app.run_parser(parser, func, settings=Settings()) == ExitCode.SUCCESS
    run.assert_called_once()
    func.assert_not_called()


def test_invalid_settings(parser, monkeypatch, mocker, tmp_path):
    monkeypatch.delenv("ARGPANE_WORKER", raising=False)
    config = tmp_path / "config.toml"
    config.write_text("[argpane]\npoll_interval = 'often'\n")
    monkeypatch.setenv("ARGPANE_CONFIG", str(config))
    run = mocker.patch.object(app.TerminalHost, "run")
    assert app.run_parser(parser, mocker.Mock()) == ExitCode.USAGE_ERROR
    run.assert_not_called()
