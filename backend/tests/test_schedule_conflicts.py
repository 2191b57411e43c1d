"""
Unit tests per il rilevamento delle sovrapposizioni in agenda.
"""

import datetime
import uuid

from conftest import MockAppointment
from app.services.schedule_conflicts import NO_CONFLICT, AppointmentAvailability, detect_conflicts

UTC = datetime.timezone.utc


def at(hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(2025, 3, 10, hour, minute, tzinfo=UTC)


class TestPrimaryCollaboratorConflicts:
    """Test sovrapposizioni sul veterinario."""

    def test_overlapping_appointments_are_both_flagged(self):
        """Test [09:00,09:30) e [09:15,09:45) dello stesso veterinario."""
        vet = uuid.uuid4()
        a = MockAppointment(veterinarian_id=vet, scheduled_start=at(9), scheduled_end=at(9, 30))
        b = MockAppointment(veterinarian_id=vet, scheduled_start=at(9, 15), scheduled_end=at(9, 45))

        flags = detect_conflicts([a, b])

        assert flags[a.id].primary_collaborator_conflict is True
        assert flags[b.id].primary_collaborator_conflict is True
        assert flags[a.id].assistant_collaborator_conflict is False

    def test_touching_appointments_do_not_conflict(self):
        """Test intervalli semiaperti: [09:00,09:30) e [09:30,10:00)."""
        vet = uuid.uuid4()
        a = MockAppointment(veterinarian_id=vet, scheduled_start=at(9), scheduled_end=at(9, 30))
        b = MockAppointment(veterinarian_id=vet, scheduled_start=at(9, 30), scheduled_end=at(10))

        flags = detect_conflicts([b, a])

        assert flags[a.id] == NO_CONFLICT
        assert flags[b.id] == NO_CONFLICT

    def test_different_veterinarians_do_not_conflict(self):
        """Test stessi orari su veterinari diversi."""
        a = MockAppointment(scheduled_start=at(9), scheduled_end=at(10))
        b = MockAppointment(scheduled_start=at(9), scheduled_end=at(10))

        flags = detect_conflicts([a, b])

        assert not flags[a.id].primary_collaborator_conflict
        assert not flags[b.id].primary_collaborator_conflict

    def test_long_appointment_overlaps_later_ones(self):
        """Test un appuntamento lungo si sovrappone a uno non adiacente."""
        vet = uuid.uuid4()
        long_one = MockAppointment(veterinarian_id=vet, scheduled_start=at(9), scheduled_end=at(12))
        short = MockAppointment(veterinarian_id=vet, scheduled_start=at(9), scheduled_end=at(9, 15))
        later = MockAppointment(veterinarian_id=vet, scheduled_start=at(11), scheduled_end=at(11, 30))

        flags = detect_conflicts([later, short, long_one])

        assert flags[long_one.id].primary_collaborator_conflict
        assert flags[short.id].primary_collaborator_conflict
        assert flags[later.id].primary_collaborator_conflict


class TestCompletedExclusion:
    """Test gli appuntamenti completati non generano conflitti."""

    def test_completed_appointment_never_flagged(self):
        """Test completato sovrapposto a uno programmato."""
        vet = uuid.uuid4()
        done = MockAppointment(
            veterinarian_id=vet, scheduled_start=at(9), scheduled_end=at(10), status="completed"
        )
        pending = MockAppointment(veterinarian_id=vet, scheduled_start=at(9, 30), scheduled_end=at(10, 30))

        flags = detect_conflicts([done, pending])

        assert flags[done.id] == NO_CONFLICT
        assert flags[pending.id] == NO_CONFLICT


class TestAssistantConflicts:
    """Test sovrapposizioni sull'assistente."""

    def test_assistant_flag_is_independent_from_primary(self):
        """Test stesso assistente, veterinari diversi."""
        assistant = uuid.uuid4()
        a = MockAppointment(assistant_id=assistant, scheduled_start=at(9), scheduled_end=at(10))
        b = MockAppointment(assistant_id=assistant, scheduled_start=at(9, 30), scheduled_end=at(10, 30))

        flags = detect_conflicts([a, b])

        assert flags[a.id] == AppointmentAvailability(
            primary_collaborator_conflict=False,
            assistant_collaborator_conflict=True,
        )
        assert flags[b.id].assistant_collaborator_conflict

    def test_missing_assistant_is_ignored(self):
        """Test appuntamenti senza assistente non si sovrappongono fra loro come assistente."""
        a = MockAppointment(scheduled_start=at(9), scheduled_end=at(10))
        b = MockAppointment(scheduled_start=at(9), scheduled_end=at(10))

        flags = detect_conflicts([a, b])

        assert not flags[a.id].assistant_collaborator_conflict
        assert not flags[b.id].assistant_collaborator_conflict

    def test_as_dict(self):
        """Test serializzazione dei flag."""
        assert AppointmentAvailability(True, False).as_dict() == {
            "primary_collaborator_conflict": True,
            "assistant_collaborator_conflict": False,
        }
