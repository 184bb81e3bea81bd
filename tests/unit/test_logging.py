import json

import pytest
import structlog

from signal_relay.logging import level_number, setup_logging


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestSetupLogging:
    def test_json_keeps_persian_text(self, capsys):
        setup_logging(json_output=True)
        structlog.get_logger("relay").info("relay_delivered", text="خرید طلا")

        line = capsys.readouterr().out.strip()
        assert "خرید طلا" in line
        event = json.loads(line)
        assert event["event"] == "relay_delivered"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_events_below_level_dropped(self, capsys):
        setup_logging(json_output=True, level="warning")
        log = structlog.get_logger("relay")
        log.info("relay_new_message")
        log.warning("relay_translation_failed")

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["event"] == "relay_translation_failed"

    def test_debug_level_passes_debug_events(self, capsys):
        setup_logging(json_output=True, level="DEBUG")
        structlog.get_logger("relay").debug("llm_call_complete")
        assert "llm_call_complete" in capsys.readouterr().out

    def test_console_renderer(self, capsys):
        setup_logging(json_output=False)
        structlog.get_logger("relay").info("polling_ready")
        out = capsys.readouterr().out
        assert "polling_ready" in out
        with pytest.raises(json.JSONDecodeError):
            json.loads(out)


class TestLevelNumber:
    def test_known_levels(self):
        assert level_number("info") == 20
        assert level_number(" Error ") == 40

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError, match="verbose"):
            level_number("verbose")
