"""
Rilevamento sovrapposizioni in agenda
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Per ogni appuntamento calcola due flag indipendenti:
- primary_collaborator_conflict: il veterinario ha un altro appuntamento sovrapposto
- assistant_collaborator_conflict: l'assistente ha un altro appuntamento sovrapposto

Gli intervalli sono semiaperti [start, end): appuntamenti che si toccano
non sono in conflitto. Gli appuntamenti completati non partecipano.
Il calcolo è puro e non persiste nulla; i flag sono indicativi e possono
essere già superati da scritture concorrenti.
"""

import datetime
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol

COMPLETED_STATUS = "completed"


class ScheduledItem(Protocol):
    id: uuid.UUID
    veterinarian_id: uuid.UUID
    assistant_id: Optional[uuid.UUID]
    scheduled_start: datetime.datetime
    scheduled_end: datetime.datetime
    status: str


@dataclass(frozen=True)
class AppointmentAvailability:
    """Flag di sovrapposizione di un appuntamento."""

    primary_collaborator_conflict: bool = False
    assistant_collaborator_conflict: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {
            "primary_collaborator_conflict": self.primary_collaborator_conflict,
            "assistant_collaborator_conflict": self.assistant_collaborator_conflict,
        }


NO_CONFLICT = AppointmentAvailability()


def _status_value(item: ScheduledItem) -> str:
    status = item.status
    return getattr(status, "value", status)


def _flag_overlaps(
    items: list[ScheduledItem],
    key: Callable[[ScheduledItem], Optional[uuid.UUID]],
) -> set[uuid.UUID]:
    """
    Restituisce gli id degli appuntamenti sovrapposti per la chiave indicata.

    Raggruppa per collaboratore, ordina per inizio e scorre le coppie:
    appena un successivo inizia dopo la fine del corrente il ciclo interno
    si interrompe, perché anche i seguenti iniziano dopo.
    """
    groups: dict[uuid.UUID, list[ScheduledItem]] = defaultdict(list)
    for item in items:
        collaborator_id = key(item)
        if collaborator_id is not None:
            groups[collaborator_id].append(item)

    flagged: set[uuid.UUID] = set()
    for group in groups.values():
        group.sort(key=lambda a: a.scheduled_start)
        for i, current in enumerate(group):
            for following in group[i + 1:]:
                if following.scheduled_start >= current.scheduled_end:
                    break
                flagged.add(current.id)
                flagged.add(following.id)
    return flagged


def detect_conflicts(
    appointments: Iterable[ScheduledItem],
) -> dict[uuid.UUID, AppointmentAvailability]:
    """
    Calcola i flag di sovrapposizione per ogni appuntamento ricevuto.

    Args:
        appointments: Appuntamenti già filtrati per finestra o collaboratore

    Returns:
        Mappa id appuntamento → AppointmentAvailability (anche per i completati,
        che hanno sempre entrambi i flag a False)
    """
    appointments = list(appointments)
    active = [a for a in appointments if _status_value(a) != COMPLETED_STATUS]

    primary = _flag_overlaps(active, lambda a: a.veterinarian_id)
    assistant = _flag_overlaps(active, lambda a: a.assistant_id)

    return {
        a.id: AppointmentAvailability(
            primary_collaborator_conflict=a.id in primary,
            assistant_collaborator_conflict=a.id in assistant,
        )
        for a in appointments
    }
