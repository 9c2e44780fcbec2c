from __future__ import annotations

from pathlib import Path

from vigia_core.application.change_detector import ChangeDetector
from vigia_core.domain.contracts import Listing
from vigia_core.infrastructure.storage.json_known_set import FreewareKnownSet


class _LoggerStub:
    def info(self, message: str, *, extra: dict[str, object]) -> None:
        return None

    def error(self, message: str, *, extra: dict[str, object]) -> None:
        return None


def _listing(listing_id: str, title: str = "Jogo") -> Listing:
    return Listing(id=listing_id, title=title, url=f"https://freetp.org/{listing_id}-x.html", update_date="")


def test_only_unknown_ids_are_new_and_second_pass_is_empty(tmp_path: Path) -> None:
    store = FreewareKnownSet(tmp_path / "games.json", logger=_LoggerStub())
    store.upsert_all([_listing("1")])
    detector = ChangeDetector()
    candidates = [_listing("1"), _listing("2"), _listing("3")]

    first = detector.diff_new(candidates, store)
    store.upsert_all(first)
    second = detector.diff_new(candidates, store)

    assert [item.id for item in first] == ["2", "3"]
    assert second == []


def test_changed_fields_do_not_make_known_entry_new(tmp_path: Path) -> None:
    store = FreewareKnownSet(tmp_path / "games.json", logger=_LoggerStub())
    store.upsert_all([_listing("1", "Nome antigo")])

    assert ChangeDetector().diff_new([_listing("1", "Nome novo")], store) == []
