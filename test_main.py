"""Tests for the server entry point's option handling."""

from dogeminer.main import load_config, parse_args


def test_defaults_come_from_environment(monkeypatch):
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9000")

    args = parse_args([])
    config = load_config(args)

    assert args.log_level == "INFO"
    assert (config.host, config.port) == ("127.0.0.1", 9000)


def test_command_line_overrides_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9000")

    config = load_config(parse_args(["--host", "0.0.0.0", "--port", "8100", "--log-level", "DEBUG"]))

    assert (config.host, config.port) == ("0.0.0.0", 8100)
