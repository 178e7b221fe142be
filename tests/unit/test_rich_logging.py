"""
Unit tests for Rich console output helpers.
"""

import io

import pytest
from rich.console import Console

from agnostic_decoder.decoder import DecoderConfig, PredictionResult
from agnostic_decoder.utils.rich_logging import (
    RichLogger,
    RichProgressTracker,
    format_duration,
    scores_by_word,
)


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=160, record=True)


class TestRichLogger:
    """Test cases for RichLogger"""

    def test_prints_header_and_messages(self, console):
        rich_logger = RichLogger(name="Test Decoder", console=console)
        rich_logger.info("loading")
        rich_logger.success("trained")

        output = console.export_text()
        assert "Test Decoder" in output
        assert "loading" in output
        assert "trained" in output

    def test_config_summary(self, console):
        rich_logger = RichLogger(console=console)
        rich_logger.log_config_summary(DecoderConfig().to_dict())

        output = console.export_text()
        assert "gamma" in output
        assert "[100, 50]" in output

    def test_prediction_table(self, console):
        rich_logger = RichLogger(console=console)
        result = PredictionResult("focus", "Definition not found", "entity")
        rich_logger.log_prediction(result.to_dict(), {'focus': 0.9, 'relax': 0.1})

        output = console.export_text()
        assert "Definition not found" in output
        assert "score[relax]" in output

    def test_save_writes_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "decode.log"
        rich_logger = RichLogger(log_file=log_file, console=Console(file=io.StringIO(), record=True))
        assert log_file.parent.is_dir()
        rich_logger.info("saved line")
        rich_logger.save()

        assert "saved line" in log_file.read_text()


class TestProgressTracker:
    """Test cases for RichProgressTracker"""

    def test_callback_updates_step(self, console):
        with RichProgressTracker(10, "Fitting", console=console) as tracker:
            tracker(3, 0.25)
        assert tracker.current_step == 3


@pytest.mark.parametrize("seconds,expected", [
    (12.34, "12.3s"),
    (125, "2m 5s"),
    (3725, "1h 2m"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_scores_by_word():
    scores = {0: 0.7, 1: 0.2, 5: 0.1}
    assert scores_by_word(scores, {0: 'focus', 1: 'relax'}) == {'focus': 0.7, 'relax': 0.2, '5': 0.1}
