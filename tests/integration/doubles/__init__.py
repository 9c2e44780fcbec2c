"""Dublês utilizados pelos testes de integração."""

from __future__ import annotations

from .fakes import (  # noqa: F401
    FakePageFetcher,
    FixedClock,
    RecordingLogger,
    RecordingTransport,
    settle,
)

__all__ = [
    "FakePageFetcher",
    "FixedClock",
    "RecordingLogger",
    "RecordingTransport",
    "settle",
]
