import pytest

from signal_relay.__main__ import (
    _run_status,
    create_app_components,
    parse_args,
    webhook_path,
)
from signal_relay.relay.engine import RelayEngine


def _components():
    return create_app_components(
        telegram_bot_token="123:test-token",
        source_channel_id="-1001111",
        target_channel_id="-1002222",
        database_url="sqlite:///:memory:",
        openrouter_api_key="sk-or-test",
    )


def test_create_app_components():
    """Verify we can construct core components without starting services."""
    components = _components()
    assert "bot" in components
    assert "db_engine" in components
    assert "translator" in components
    assert "delivery" in components
    assert isinstance(components["relay_engine"], RelayEngine)


def test_delivery_fallback_wiring():
    components = create_app_components(
        telegram_bot_token="123:test-token",
        source_channel_id="-1001111",
        target_channel_id="-1002222",
        database_url="sqlite:///:memory:",
        delivery_address_fallback=True,
    )
    assert components["delivery"].renderings == ["2222", 2222, "-1002222"]


def test_parse_args_default_runs_bot():
    assert parse_args([]).command is None


def test_parse_args_translate():
    args = parse_args(["translate", "Buy gold"])
    assert args.command == "translate"
    assert args.text == "Buy gold"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://relay.example.com/telegram/hook", "telegram/hook"),
        ("https://relay.example.com", ""),
    ],
)
def test_webhook_path(url, expected):
    assert webhook_path(url) == expected


def test_run_status_empty(capsys):
    _run_status(_components())
    out = capsys.readouterr().out
    assert "Source messages: 0" in out
    assert "No translations yet." in out
