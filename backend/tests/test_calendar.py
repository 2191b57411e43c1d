"""
Unit tests per capienza e riepilogo del calendario.
"""

import asyncio
import datetime
import uuid
from unittest.mock import MagicMock

import pytest

from conftest import MockAppointment, MockCollaborator
from app.core.exceptions import NotFoundError
from app.schemas.appointment import CalendarView
from app.services.calendar_service import (
    calendar_service,
    compute_capacity,
    compute_range,
    slots_per_day,
    summarize,
)

UTC = datetime.timezone.utc
SHIFTS = {"MORNING": 4, "AFTERNOON": 4, "NIGHT": 4}


class TestSlotsPerDay:
    """Test posti giornalieri per turno."""

    def test_known_shifts(self):
        """Test somma dei turni censiti."""
        assert slots_per_day(["MORNING", "AFTERNOON"], SHIFTS, 2) == 8

    def test_shift_names_are_case_insensitive(self):
        """Test confronto in maiuscolo."""
        assert slots_per_day(["morning", " Night "], SHIFTS, 2) == 8

    def test_unknown_shift_defaults_to_two(self):
        """Test turno non censito vale 2 posti."""
        assert slots_per_day(["WEEKEND"], SHIFTS, 2) == 2
        assert slots_per_day(["MORNING", "WEEKEND"], SHIFTS, 2) == 6

    def test_uses_settings_by_default(self):
        """Test tabella e default dalla configurazione."""
        assert slots_per_day(["MORNING", "UNKNOWN"]) == 6


class TestComputeCapacity:
    """Test capienza nel range."""

    def test_without_collaborator_only_booked(self):
        """Test senza collaboratore total e available sono None."""
        appointments = [
            MockAppointment(),
            MockAppointment(status="confirmed"),
            MockAppointment(status="completed"),
        ]
        capacity = compute_capacity(appointments, compute_range(CalendarView.DAY, datetime.date(2025, 3, 10)))

        assert capacity.total_slots is None
        assert capacity.available_slots is None
        assert capacity.booked_slots == 2

    def test_week_with_collaborator(self):
        """Test settimana: 7 giorni per 8 posti al giorno."""
        time_range = compute_range(CalendarView.WEEK, datetime.date(2025, 3, 12))
        appointments = [MockAppointment() for _ in range(5)]

        capacity = compute_capacity(
            appointments, time_range, ["MORNING", "NIGHT"], shift_capacity=SHIFTS, default_slots=2
        )

        assert capacity.total_slots == 56
        assert capacity.booked_slots == 5
        assert capacity.available_slots == 51

    def test_month_with_collaborator(self):
        """Test marzo 2025: 31 giorni per 8 posti, completati esclusi."""
        time_range = compute_range(CalendarView.MONTH, datetime.date(2025, 3, 12))
        appointments = [MockAppointment(), MockAppointment(status="confirmed"), MockAppointment(status="completed")]

        capacity = compute_capacity(
            appointments, time_range, ["MORNING", "AFTERNOON"], shift_capacity=SHIFTS, default_slots=2
        )

        assert capacity.total_slots == 248
        assert capacity.booked_slots == 2
        assert capacity.available_slots == 246

    def test_available_never_negative(self):
        """Test available non scende sotto zero."""
        time_range = compute_range("day", datetime.date(2025, 3, 12))
        appointments = [MockAppointment() for _ in range(5)]

        capacity = compute_capacity(appointments, time_range, ["UNKNOWN"], shift_capacity=SHIFTS, default_slots=2)

        assert capacity.total_slots == 2
        assert capacity.available_slots == 0

    def test_collaborator_without_shifts(self):
        """Test collaboratore senza turni: capienza zero."""
        time_range = compute_range("month", datetime.date(2025, 3, 12))

        capacity = compute_capacity([], time_range, [], shift_capacity=SHIFTS, default_slots=2)

        assert capacity.total_slots == 0
        assert capacity.available_slots == 0


class TestSummary:
    """Test conteggi per stato."""

    def test_counts(self):
        """Test pending = scheduled."""
        appointments = [
            MockAppointment(status="scheduled"),
            MockAppointment(status="scheduled"),
            MockAppointment(status="confirmed"),
            MockAppointment(status="completed"),
        ]
        summary = summarize(appointments)

        assert summary.total == 4
        assert summary.pending == 2
        assert summary.confirmed == 1
        assert summary.completed == 1


class TestCalendarService:
    """Test get_calendar con sessione mock."""

    def test_unknown_collaborator(self, mock_db):
        """Test collaboratore inesistente."""
        mock_db.get.return_value = None

        with pytest.raises(NotFoundError):
            asyncio.run(
                calendar_service.get_calendar(
                    mock_db, CalendarView.DAY, datetime.date(2025, 3, 10), collaborator_id=uuid.uuid4()
                )
            )
        mock_db.execute.assert_not_called()

    def test_calendar_for_collaborator(self, mock_db):
        """Test capienza da turni e flag di sovrapposizione sugli appuntamenti restituiti."""
        vet = MockCollaborator(shifts=["MORNING"])
        a = MockAppointment(
            scheduled_start=datetime.datetime(2025, 3, 10, 9, tzinfo=UTC),
            scheduled_end=datetime.datetime(2025, 3, 10, 10, tzinfo=UTC),
            veterinarian_id=vet.id,
        )
        b = MockAppointment(
            scheduled_start=datetime.datetime(2025, 3, 10, 9, 30, tzinfo=UTC),
            scheduled_end=datetime.datetime(2025, 3, 10, 10, 30, tzinfo=UTC),
            veterinarian_id=vet.id,
        )
        result = MagicMock()
        result.scalars.return_value.all.return_value = [a, b]
        mock_db.get.return_value = vet
        mock_db.execute.return_value = result

        calendar = asyncio.run(
            calendar_service.get_calendar(
                mock_db, CalendarView.DAY, datetime.date(2025, 3, 10), collaborator_id=vet.id
            )
        )

        assert calendar.capacity.total_slots == 4
        assert calendar.capacity.booked_slots == 2
        assert calendar.capacity.available_slots == 2
        assert calendar.summary.pending == 2
        assert all(item.primary_collaborator_conflict for item in calendar.appointments)

    def test_month_view_for_collaborator(self, mock_db):
        """Test vista mensile di febbraio: 28 giorni per 8 posti."""
        assistant = MockCollaborator(role="assistant", shifts=["morning", "afternoon"])
        appointment = MockAppointment(
            scheduled_start=datetime.datetime(2025, 2, 14, 9, tzinfo=UTC),
            scheduled_end=datetime.datetime(2025, 2, 14, 9, 30, tzinfo=UTC),
            assistant_id=assistant.id,
        )
        result = MagicMock()
        result.scalars.return_value.all.return_value = [appointment]
        mock_db.get.return_value = assistant
        mock_db.execute.return_value = result

        calendar = asyncio.run(
            calendar_service.get_calendar(
                mock_db, CalendarView.MONTH, datetime.date(2025, 2, 14), collaborator_id=assistant.id
            )
        )

        assert calendar.range.start.date() == datetime.date(2025, 2, 1)
        assert calendar.range.end.date() == datetime.date(2025, 2, 28)
        assert calendar.capacity.total_slots == 224
        assert calendar.capacity.booked_slots == 1
        assert calendar.capacity.available_slots == 223
