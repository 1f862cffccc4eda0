"""Tests for structured logging."""

import io
import json
import logging
import sys
from datetime import date
from decimal import Decimal

import pytest

from bookit.domain.entities import PostingKind
from bookit.logging_config import (
    StructuredFormatter,
    configure_logging,
    get_logger,
    parse_level,
)


def _record(msg="booked", **extra):
    record = logging.LogRecord("bookit.booking", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_base_fields(self):
        payload = json.loads(StructuredFormatter().format(_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "bookit.booking"
        assert payload["message"] == "booked"
        assert "ts" in payload

    def test_extras_are_serialized(self):
        line = StructuredFormatter().format(
            _record(
                amount=Decimal("-45.00"),
                booking_date=date(2024, 3, 15),
                kind=PostingKind.BANK,
                draft_id=7,
            )
        )
        payload = json.loads(line)

        assert payload["amount"] == "-45.00"
        assert payload["booking_date"] == "2024-03-15"
        assert payload["kind"] == PostingKind.BANK.value
        assert payload["draft_id"] == 7
        assert "\n" not in line

    def test_exception_details(self):
        try:
            raise RuntimeError("disk full")
        except RuntimeError:
            record = logging.LogRecord(
                "bookit.aggregation", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["exc_type"] == "RuntimeError"
        assert payload["exc_message"] == "disk full"
        assert "Traceback" in payload["traceback"]


def test_get_logger_uses_namespace():
    assert get_logger("classifier").name == "bookit.classifier"


@pytest.mark.parametrize(
    "level,expected",
    [("debug", logging.DEBUG), (" INFO ", logging.INFO), ("Warning", logging.WARNING), (5, 5)],
)
def test_parse_level(level, expected):
    assert parse_level(level) == expected


def test_parse_level_rejects_unknown():
    with pytest.raises(ValueError, match="Unknown log level"):
        parse_level("chatty")


def test_configure_logging_writes_json_to_stream():
    stream = io.StringIO()
    configure_logging(level=logging.INFO, stream=stream)

    get_logger("drafts").info("draft created", extra={"draft_id": 3})

    payload = json.loads(stream.getvalue().strip())
    assert payload["logger"] == "bookit.drafts"
    assert payload["draft_id"] == 3


def test_configure_logging_is_idempotent():
    first, second = io.StringIO(), io.StringIO()
    configure_logging(level=logging.INFO, stream=first)
    configure_logging(level=logging.DEBUG, stream=second)

    get_logger("drafts").debug("ignored")
    get_logger("drafts").info("kept")

    assert second.getvalue() == ""
    assert len(first.getvalue().strip().splitlines()) == 1
    assert len(logging.getLogger("bookit").handlers) == 1


def test_configure_logging_with_handler():
    stream = io.StringIO()
    configure_logging(level=logging.WARNING, handler=logging.StreamHandler(stream))

    get_logger("booking").info("below threshold")
    get_logger("booking").warning("booked with warnings")

    lines = stream.getvalue().strip().splitlines()
    assert [json.loads(line)["message"] for line in lines] == ["booked with warnings"]
