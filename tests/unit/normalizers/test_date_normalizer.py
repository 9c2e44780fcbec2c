from datetime import datetime

from vigia_core.infrastructure.normalizers.date_normalizer import (
    DateTextNormalizer,
    recency_key,
)


class _ClockStub:
    def __init__(self, instant: datetime) -> None:
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def local_now(self) -> datetime:
        return self._instant


def _normalizer() -> DateTextNormalizer:
    return DateTextNormalizer(_ClockStub(datetime(2024, 3, 10, 15, 45, 30)))


def test_normalize_keeps_absolute_dates_verbatim() -> None:
    assert _normalizer().normalize(" Обновлено: 05-03-2024, 12:30 ") == "05-03-2024, 12:30"


def test_normalize_resolves_yesterday_with_local_date() -> None:
    assert _normalizer().normalize("Вчера, 09:15") == "09.03.2024, 09:15"
    assert _normalizer().normalize("yesterday, 23:59") == "09.03.2024, 23:59"


def test_normalize_returns_trimmed_unknown_text() -> None:
    assert _normalizer().normalize("  Сегодня, 10:00 ") == "Сегодня, 10:00"


def test_normalize_empty_uses_current_local_time() -> None:
    assert _normalizer().normalize("") == "10.03.2024, 15:45:30"
    assert _normalizer().normalize(None) == "10.03.2024, 15:45:30"


def test_find_in_prefers_absolute_date_inside_byline() -> None:
    normalizer = _normalizer()

    assert normalizer.find_in("Автор: user 01-02-2024, 08:00 Категория") == "01-02-2024, 08:00"
    assert normalizer.find_in("Вчера, 18:20 | Автор") == "Вчера, 18:20"
    assert normalizer.find_in("sem data") is None


def test_recency_key_orders_known_formats_and_sinks_unknown() -> None:
    values = ["Сегодня", "01-02-2024, 08:00", "09.03.2024, 09:15", "10.03.2024, 15:45:30"]

    ordered = sorted(values, key=recency_key, reverse=True)

    assert ordered == ["10.03.2024, 15:45:30", "09.03.2024, 09:15", "01-02-2024, 08:00", "Сегодня"]
    assert recency_key("") == 0.0
