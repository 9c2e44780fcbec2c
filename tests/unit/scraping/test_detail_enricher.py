from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

from vigia_core.domain.contracts import Listing
from vigia_core.domain.errors import ErrorKind, FetchError
from vigia_core.infrastructure.scraping.detail_enricher import DetailEnricher, parse_genres

_DETAIL_PAGE = """
<html><body><div class="maincont">
<p>Описание игры.</p>
<p><span>Жанр:</span>&nbsp;Экшены, Приключенческие игры ,  Инди. Год выпуска: 2021</p>
</div></body></html>
"""


class _LoggerStub:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def info(self, message: str, *, extra: dict[str, object]) -> None:
        self.messages.append(message)

    def warning(self, message: str, *, extra: dict[str, object]) -> None:
        self.messages.append(message)

    def error(self, message: str, *, extra: dict[str, object]) -> None:
        self.messages.append(message)


class _FetcherStub:
    def __init__(self, outcomes: Mapping[str, Sequence[str | Exception]]) -> None:
        self._outcomes = {url: list(items) for url, items in outcomes.items()}
        self.calls: list[str] = []

    async def fetch_text(self, url: str, *, timeout: float | None = None) -> str:
        self.calls.append(url)
        outcome = self._outcomes[url].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class _SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _listing(item_id: str) -> Listing:
    return Listing(
        id=item_id,
        title=f"Jogo {item_id}",
        url=f"https://freetp.org/po-seti/{item_id}-jogo.html",
        update_date="01-01-2024, 10:00",
    )


def _transient() -> FetchError:
    return FetchError("timeout", kind=ErrorKind.TRANSIENT_NETWORK)


def test_parse_genres_reads_labelled_paragraph() -> None:
    assert parse_genres(_DETAIL_PAGE) == ["Экшены", "Приключенческие игры", "Инди"]


def test_parse_genres_falls_back_to_container_text() -> None:
    markup = '<div class="maincont">Genre: Puzzle, Indie. Outros dados</div>'

    assert parse_genres(markup) == ["Puzzle", "Indie"]


def test_parse_genres_returns_empty_without_label() -> None:
    assert parse_genres("<div class='maincont'><p>Sem informação</p></div>") == []


def test_run_enriches_concurrently_with_retry_and_isolated_failures() -> None:
    listings = [_listing("1"), _listing("2"), _listing("3")]
    fetcher = _FetcherStub(
        {
            listings[0].url: [_DETAIL_PAGE],
            listings[1].url: [_transient(), "<p>Genre: Racing.</p>"],
            listings[2].url: [FetchError("404", kind=ErrorKind.OTHER, status_code=404)],
        }
    )
    sleep = _SleepRecorder()
    completed: list[Sequence[Listing]] = []
    enricher = DetailEnricher(fetcher=fetcher, logger=_LoggerStub(), sleep=sleep)

    report = asyncio.run(enricher.run(listings, completed.append))

    assert listings[0].genres == ["Экшены", "Приключенческие игры", "Инди"]
    assert listings[1].genres == ["Racing"]
    assert listings[2].genres == ["unspecified"]
    assert (report.succeeded, report.failed) == (2, 1)
    assert completed == [listings]
    assert sorted(sleep.delays) == [0.1, 0.2, 0.5]
    assert len(fetcher.calls) == 4


def test_fetch_genres_gives_up_after_two_transient_failures() -> None:
    listing = _listing("9")
    fetcher = _FetcherStub({listing.url: [_transient(), _transient()]})
    sleep = _SleepRecorder()
    enricher = DetailEnricher(fetcher=fetcher, logger=_LoggerStub(), sleep=sleep)

    report = asyncio.run(enricher.run([listing]))

    assert listing.genres == ["unspecified"]
    assert report.failed == 1
    assert sleep.delays == [0.5]


def test_page_without_genres_marks_unspecified_as_success() -> None:
    listing = _listing("4")
    fetcher = _FetcherStub({listing.url: ["<p>nada</p>"]})
    enricher = DetailEnricher(fetcher=fetcher, logger=_LoggerStub(), sleep=_SleepRecorder())

    report = asyncio.run(enricher.run([listing]))

    assert listing.genres == ["unspecified"]
    assert report.succeeded == 1


def test_start_runs_detached_and_awaits_async_callback() -> None:
    listing = _listing("5")
    fetcher = _FetcherStub({listing.url: [_DETAIL_PAGE]})
    enricher = DetailEnricher(fetcher=fetcher, logger=_LoggerStub(), sleep=_SleepRecorder())
    stored: list[str] = []

    async def _on_complete(items: Sequence[Listing]) -> None:
        stored.extend(item.id for item in items)

    async def _scenario() -> None:
        task = enricher.start([listing], _on_complete)
        assert listing.genres == ["pending"]
        await task

    asyncio.run(_scenario())

    assert stored == ["5"]
    assert listing.genres[0] == "Экшены"
