import json
import logging

from vigia_core.infrastructure.logging.logger import StructuredFormatter, configure_logger


def test_structured_formatter_serializes_extra_payload() -> None:
    formatter = StructuredFormatter(fmt="%(message)s | %(extra)s")
    record = logging.LogRecord("vigia", logging.INFO, __file__, 1, "evento", None, None)
    record.__dict__["extra"] = {"chat_id": 10, "título": "Jogo"}

    output = formatter.format(record)

    message, payload = output.split(" | ", 1)
    assert message == "evento"
    assert json.loads(payload) == {"chat_id": 10, "título": "Jogo"}


def test_configure_logger_returns_children_under_root() -> None:
    root = configure_logger()
    child = configure_logger("delivery")

    assert root.name == "vigia"
    assert child.name == "vigia.delivery"
    assert len(root.handlers) == 1
    assert configure_logger() is root
    assert len(root.handlers) == 1
