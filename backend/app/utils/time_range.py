"""
Intervalli temporali
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Aritmetica pura sugli intervalli: sovrapposizione semiaperta [start, end)
e calcolo dei range giorno/settimana/mese in UTC per l'agenda.
"""

import calendar
import datetime
from dataclasses import dataclass
from typing import Union

UTC = datetime.timezone.utc
ONE_DAY = datetime.timedelta(days=1)
# Fine giornata con precisione al millisecondo
END_OF_DAY = datetime.time(23, 59, 59, 999000, tzinfo=UTC)

DateLike = Union[datetime.date, datetime.datetime]


def intervals_overlap(
    start_a: datetime.datetime,
    end_a: datetime.datetime,
    start_b: datetime.datetime,
    end_b: datetime.datetime,
) -> bool:
    """
    True se [start_a, end_a) e [start_b, end_b) si sovrappongono.

    Due intervalli che si toccano (end_a == start_b) non si sovrappongono.
    """
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class TimeRange:
    """Intervallo [start, end] con estremi timezone-aware."""

    start: datetime.datetime
    end: datetime.datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("La fine dell'intervallo precede l'inizio")

    def overlaps(self, start: datetime.datetime, end: datetime.datetime) -> bool:
        """True se l'intervallo [start, end) interseca questo range."""
        return intervals_overlap(self.start, self.end, start, end)

    @property
    def days_spanned(self) -> int:
        """Numero di giorni coperti, estremi inclusi (minimo 1)."""
        return max((self.end - self.start) // ONE_DAY + 1, 1)


def to_utc_date(reference: DateLike) -> datetime.date:
    """
    Riduce una data o un datetime alla data di calendario UTC.

    I datetime naive sono considerati già in UTC.
    """
    if isinstance(reference, datetime.datetime):
        if reference.tzinfo is not None:
            reference = reference.astimezone(UTC)
        return reference.date()
    return reference


def _start_of(day: datetime.date) -> datetime.datetime:
    return datetime.datetime.combine(day, datetime.time(0, 0, tzinfo=UTC))


def _end_of(day: datetime.date) -> datetime.datetime:
    return datetime.datetime.combine(day, END_OF_DAY)


def day_range(reference: DateLike) -> TimeRange:
    """Giornata UTC: da mezzanotte alle 23:59:59.999."""
    day = to_utc_date(reference)
    return TimeRange(_start_of(day), _end_of(day))


def week_range(reference: DateLike) -> TimeRange:
    """Settimana ISO (lunedì-domenica) che contiene la data di riferimento."""
    day = to_utc_date(reference)
    # weekday(): lunedì = 0
    monday = day - datetime.timedelta(days=day.weekday())
    sunday = monday + datetime.timedelta(days=6)
    return TimeRange(_start_of(monday), _end_of(sunday))


def month_range(reference: DateLike) -> TimeRange:
    """Mese di calendario UTC, dal primo all'ultimo giorno inclusi."""
    day = to_utc_date(reference)
    last_day = calendar.monthrange(day.year, day.month)[1]
    return TimeRange(
        _start_of(day.replace(day=1)),
        _end_of(day.replace(day=last_day)),
    )


_RANGE_BUILDERS = {
    "day": day_range,
    "week": week_range,
    "month": month_range,
}


def range_for_view(view: str, reference: DateLike) -> TimeRange:
    """
    Calcola il range per la vista agenda richiesta.

    Args:
        view: "day", "week" o "month"
        reference: Data di riferimento

    Raises:
        ValueError: Se la vista non è supportata
    """
    try:
        builder = _RANGE_BUILDERS[str(view)]
    except KeyError:
        raise ValueError(f"Vista agenda non supportata: {view}") from None
    return builder(reference)
