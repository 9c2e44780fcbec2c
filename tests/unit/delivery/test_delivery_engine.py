from __future__ import annotations

import asyncio
from dataclasses import replace

from vigia_core.domain.contracts import Listing, SendOptions
from vigia_core.domain.errors import DeliveryError, ErrorKind
from vigia_core.infrastructure.delivery.delivery_engine import (
    DeliveryEngine,
    backoff_for,
    fit_message,
)
from vigia_core.infrastructure.presentation.formatting import format_listing


class _LoggerStub:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def info(self, message: str, *, extra: dict[str, object]) -> None:
        self.messages.append(message)

    def warning(self, message: str, *, extra: dict[str, object]) -> None:
        self.messages.append(message)

    def error(self, message: str, *, extra: dict[str, object]) -> None:
        self.messages.append(message)


class _TransportStub:
    def __init__(self, outcomes: list[Exception | None] | None = None) -> None:
        self._outcomes = list(outcomes or [])
        self.sent: list[tuple[int, str, SendOptions | None]] = []
        self.edits: list[tuple[int, int, str]] = []
        self.answers: list[str] = []

    def _next(self) -> None:
        outcome = self._outcomes.pop(0) if self._outcomes else None
        if outcome is not None:
            raise outcome

    async def send_message(self, chat_id: int, text: str, options: SendOptions | None = None) -> dict:
        self.sent.append((chat_id, text, options))
        self._next()
        return {"message_id": len(self.sent)}

    async def edit_message_text(
        self, chat_id: int, message_id: int, text: str, options: SendOptions | None = None
    ) -> dict:
        self.edits.append((chat_id, message_id, text))
        self._next()
        return {}

    async def answer_callback_query(
        self, callback_id: str, *, text: str | None = None, show_alert: bool = False
    ) -> None:
        self.answers.append(callback_id)
        self._next()


class _SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _engine(
    transport: _TransportStub,
    sleep: _SleepRecorder | None = None,
    logger: _LoggerStub | None = None,
    **kwargs,
) -> DeliveryEngine:
    return DeliveryEngine(
        transport,
        logger=logger or _LoggerStub(),
        sleep=sleep or _SleepRecorder(),
        **kwargs,
    )


def _rate_limited() -> DeliveryError:
    return DeliveryError("Too Many Requests", kind=ErrorKind.RATE_LIMITED, status_code=429)


def test_backoff_policy_by_kind() -> None:
    assert backoff_for(ErrorKind.VALIDATION, 1) is None
    assert backoff_for(ErrorKind.RATE_LIMITED, 2) == 4.0
    assert backoff_for(ErrorKind.TRANSIENT_NETWORK, 1) == 2.0
    assert backoff_for(ErrorKind.OTHER, 3) == 3.0


def test_send_succeeds_on_first_attempt() -> None:
    transport = _TransportStub()

    assert asyncio.run(_engine(transport).send(10, "oi")) is True
    assert transport.sent == [(10, "oi", SendOptions())]


def test_validation_error_stops_after_single_attempt() -> None:
    transport = _TransportStub(
        [DeliveryError("Bad Request: can't parse entities", kind=ErrorKind.VALIDATION, status_code=400)]
    )
    sleep = _SleepRecorder()
    logger = _LoggerStub()

    result = asyncio.run(_engine(transport, sleep, logger).send(10, "<b>quebrado"))

    assert result is False
    assert len(transport.sent) == 1
    assert sleep.calls == []
    assert logger.messages == ["delivery.rejected"]


def test_rate_limit_retries_with_growing_backoff_then_gives_up() -> None:
    transport = _TransportStub([_rate_limited(), _rate_limited(), _rate_limited()])
    sleep = _SleepRecorder()
    logger = _LoggerStub()

    result = asyncio.run(_engine(transport, sleep, logger).send(10, "oi", max_attempts=3))

    assert result is False
    assert len(transport.sent) == 3
    assert sleep.calls == [2.0, 4.0]
    assert logger.messages == ["delivery.retry", "delivery.retry", "delivery.exhausted"]


def test_transient_failure_recovers_on_retry() -> None:
    transport = _TransportStub([RuntimeError("conexão resetada"), None])
    sleep = _SleepRecorder()

    assert asyncio.run(_engine(transport, sleep).send(10, "oi")) is True
    assert sleep.calls == [1.0]


def test_notification_chat_messages_are_routed_to_topic() -> None:
    transport = _TransportStub()
    engine = _engine(transport, notification_chat_id=-100, notification_topic_id=7)

    async def scenario() -> None:
        await engine.send(-100, "notificação")
        await engine.send(55, "outro chat")
        await engine.send(-100, "tópico explícito", SendOptions(message_thread_id=3))

    asyncio.run(scenario())

    threads = [options.message_thread_id for _, _, options in transport.sent if options]
    assert threads == [7, None, 3]


def test_oversized_text_is_clipped_to_limit() -> None:
    transport = _TransportStub()

    asyncio.run(_engine(transport).send(10, "x" * 5000))

    assert len(transport.sent[0][1]) == 4096


def test_fallback_sends_single_plain_attempt() -> None:
    invalid = DeliveryError("Bad Request", kind=ErrorKind.VALIDATION, status_code=400)
    transport = _TransportStub([invalid, None])
    logger = _LoggerStub()

    result = asyncio.run(
        _engine(transport, logger=logger).send_with_fallback(10, "<b>rico", "simples")
    )

    assert result is True
    assert [text for _, text, _ in transport.sent] == ["<b>rico", "simples"]
    assert transport.sent[1][2].parse_mode is None
    assert "delivery.plain_fallback" in logger.messages


def test_fallback_gives_up_when_plain_also_fails() -> None:
    invalid = DeliveryError("Bad Request", kind=ErrorKind.VALIDATION, status_code=400)
    transport = _TransportStub([invalid, invalid])
    logger = _LoggerStub()

    result = asyncio.run(
        _engine(transport, logger=logger).send_with_fallback(10, "<b>rico", "simples")
    )

    assert result is False
    assert len(transport.sent) == 2
    assert logger.messages[-1] == "delivery.gave_up"


def test_edit_treats_not_modified_as_success() -> None:
    not_modified = DeliveryError("message is not modified", kind=ErrorKind.NOT_MODIFIED, status_code=400)
    transport = _TransportStub([not_modified, DeliveryError("Bad Request", kind=ErrorKind.VALIDATION)])
    engine = _engine(transport)

    assert asyncio.run(engine.edit(10, 5, "igual")) is True
    assert asyncio.run(engine.edit(10, 5, "quebrado")) is False


def test_answer_callback_swallows_errors() -> None:
    transport = _TransportStub([DeliveryError("query is too old")])

    assert asyncio.run(_engine(transport).answer_callback("cb-1")) is False
    assert transport.answers == ["cb-1"]


def test_fit_message_shortens_long_description_below_limit() -> None:
    listing = Listing(
        id="1",
        title="Jogo",
        url="https://freetp.org/1-jogo.html",
        update_date="10-01-2024, 12:00",
        description="a" * 5000,
        genres=["Ação"],
    )

    text = fit_message(
        lambda description: format_listing(
            replace(listing, description=description), description_limit=None
        ),
        listing.description,
    )

    assert len(text) <= 4096
    assert text.endswith("Mais detalhes</a>")
    assert "🎮 <b>Jogo</b>" in text


def test_fit_message_keeps_short_text_untouched() -> None:
    assert fit_message(lambda description: f"[{description}]", "curto") == "[curto]"
