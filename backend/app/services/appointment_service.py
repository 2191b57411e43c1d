"""
Service Layer per gli Appuntamenti
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce la logica di business per la gestione degli appuntamenti:
validazione di animale, tutore e collaboratori, transizioni di stato
(conferma, riprogrammazione, completamento) e flag di sovrapposizione.
"""

import datetime
import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models.appointment import Appointment
from app.models.collaborator import Collaborator
from app.models.owner import Animal
from app.schemas.appointment import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentRead,
    AppointmentReschedule,
    AppointmentStatus,
    AppointmentUpdate,
    validate_interval,
)
from app.schemas.attendance import AttendanceCreate, AttendanceKind, AttendanceUpdate
from app.services.attendance_service import attendance_service
from app.services.invoice_sync import invoice_synchronizer
from app.services.schedule_conflicts import NO_CONFLICT, detect_conflicts

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Campi della richiesta di completamento che riguardano la prestazione
_ATTENDANCE_FIELDS = {"kind", "price", "notes", "catalog_items", "product_items"}


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class AppointmentService:
    """
    Service per la gestione degli appuntamenti.

    I metodi pubblici restituiscono AppointmentRead già annotati con i flag
    di sovrapposizione; non eseguono commit.
    """

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        date_from: Optional[datetime.datetime] = None,
        date_to: Optional[datetime.datetime] = None,
        veterinarian_id: Optional[uuid.UUID] = None,
        assistant_id: Optional[uuid.UUID] = None,
        status_filter: Optional[AppointmentStatus] = None,
    ) -> list[AppointmentRead]:
        """
        Recupera gli appuntamenti che si sovrappongono all'intervallo indicato.

        Args:
            db: Sessione database
            date_from: Inizio intervallo (incluso)
            date_to: Fine intervallo (esclusa)
            veterinarian_id: Filtro per veterinario
            assistant_id: Filtro per assistente
            status_filter: Filtro per stato

        Returns:
            Lista ordinata per inizio, con flag di sovrapposizione
        """
        conditions = []
        if date_from is not None:
            conditions.append(Appointment.scheduled_end > date_from)
        if date_to is not None:
            conditions.append(Appointment.scheduled_start < date_to)
        if veterinarian_id is not None:
            conditions.append(Appointment.veterinarian_id == veterinarian_id)
        if assistant_id is not None:
            conditions.append(Appointment.assistant_id == assistant_id)
        if status_filter is not None:
            conditions.append(Appointment.status == status_filter.value)

        query = select(Appointment).order_by(Appointment.scheduled_start.asc())
        if conditions:
            query = query.where(and_(*conditions))

        result = await db.execute(query)
        appointments = list(result.scalars().all())

        logger.debug("Recuperati %d appuntamenti", len(appointments))
        return await self.annotate(db, appointments)

    async def get_by_id(self, db: AsyncSession, appointment_id: uuid.UUID) -> AppointmentRead:
        """
        Raises:
            NotFoundError: Se l'appuntamento non esiste
        """
        appointment = await self._get(db, appointment_id)
        return (await self.annotate(db, [appointment]))[0]

    async def annotate(
        self,
        db: AsyncSession,
        appointments: Iterable[Appointment],
    ) -> list[AppointmentRead]:
        """
        Converte gli appuntamenti in AppointmentRead con i flag di sovrapposizione.

        I flag tengono conto di tutti gli appuntamenti degli stessi collaboratori
        che cadono nella finestra complessiva, anche se non richiesti.
        """
        appointments = list(appointments)
        if not appointments:
            return []

        veterinarian_ids = {a.veterinarian_id for a in appointments}
        assistant_ids = {a.assistant_id for a in appointments if a.assistant_id is not None}
        window_start = min(a.scheduled_start for a in appointments)
        window_end = max(a.scheduled_end for a in appointments)

        same_collaborator = Appointment.veterinarian_id.in_(veterinarian_ids)
        if assistant_ids:
            same_collaborator = or_(same_collaborator, Appointment.assistant_id.in_(assistant_ids))

        result = await db.execute(
            select(Appointment)
            .where(Appointment.scheduled_start < window_end)
            .where(Appointment.scheduled_end > window_start)
            .where(same_collaborator)
        )
        pool = {a.id: a for a in result.scalars().all()}
        pool.update({a.id: a for a in appointments})

        availability = detect_conflicts(pool.values())
        return [
            AppointmentRead.model_validate(a).model_copy(
                update=availability.get(a.id, NO_CONFLICT).as_dict()
            )
            for a in appointments
        ]

    # ------------------------------------------------------------
    # Scrittura
    # ------------------------------------------------------------

    async def create(self, db: AsyncSession, data: AppointmentCreate) -> AppointmentRead:
        """
        Crea un appuntamento in stato scheduled.

        Raises:
            NotFoundError: Animale o collaboratori non trovati
            BusinessValidationError: Animale di altro tutore, veterinario non valido,
                assistente non valido, intervallo non valido
        """
        await self._validate_participants(
            db, data.animal_id, data.owner_id, data.veterinarian_id, data.assistant_id
        )
        self._validate_interval(data.scheduled_start, data.scheduled_end)

        appointment = Appointment(
            animal_id=data.animal_id,
            owner_id=data.owner_id,
            veterinarian_id=data.veterinarian_id,
            assistant_id=data.assistant_id,
            scheduled_start=data.scheduled_start,
            scheduled_end=data.scheduled_end,
            status=AppointmentStatus.SCHEDULED.value,
            notes=data.notes,
        )
        db.add(appointment)
        await db.flush()

        logger.info(
            "Creato appuntamento %s: veterinario=%s, %s - %s",
            appointment.id,
            appointment.veterinarian_id,
            appointment.scheduled_start,
            appointment.scheduled_end,
        )
        return (await self.annotate(db, [appointment]))[0]

    async def update(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        data: AppointmentUpdate,
    ) -> AppointmentRead:
        """
        Aggiorna i dati di un appuntamento non completato.

        I controlli di coerenza sono ripetuti sui valori risultanti.

        Raises:
            NotFoundError: Appuntamento, animale o collaboratori non trovati
            ConflictError: Appuntamento già completato
            BusinessValidationError: Dati risultanti non coerenti
        """
        appointment = await self._get(db, appointment_id, for_update=True)
        self._ensure_not_completed(appointment)

        update_data = data.model_dump(exclude_unset=True)
        merged = {
            field: update_data.get(field, getattr(appointment, field))
            for field in (
                "animal_id",
                "owner_id",
                "veterinarian_id",
                "assistant_id",
                "scheduled_start",
                "scheduled_end",
            )
        }
        await self._validate_participants(
            db,
            merged["animal_id"],
            merged["owner_id"],
            merged["veterinarian_id"],
            merged["assistant_id"],
        )
        self._validate_interval(merged["scheduled_start"], merged["scheduled_end"])

        for field, value in update_data.items():
            setattr(appointment, field, value)
        await db.flush()

        logger.info("Aggiornato appuntamento %s", appointment_id)
        return (await self.annotate(db, [appointment]))[0]

    async def confirm(self, db: AsyncSession, appointment_id: uuid.UUID) -> AppointmentRead:
        """
        Conferma l'appuntamento; confirmed_at è impostato solo se mancante.

        Raises:
            NotFoundError: Se l'appuntamento non esiste
            ConflictError: Se l'appuntamento è già completato
        """
        appointment = await self._get(db, appointment_id, for_update=True)
        self._ensure_not_completed(appointment)

        appointment.status = AppointmentStatus.CONFIRMED.value
        if appointment.confirmed_at is None:
            appointment.confirmed_at = _now()
        await db.flush()

        logger.info("Confermato appuntamento %s", appointment_id)
        return (await self.annotate(db, [appointment]))[0]

    async def reschedule(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        data: AppointmentReschedule,
    ) -> AppointmentRead:
        """
        Sposta l'appuntamento: torna in stato scheduled e perde la conferma.

        Raises:
            NotFoundError: Se l'appuntamento non esiste
            ConflictError: Se l'appuntamento è già completato
        """
        appointment = await self._get(db, appointment_id, for_update=True)
        self._ensure_not_completed(appointment)
        self._validate_interval(data.scheduled_start, data.scheduled_end)

        appointment.scheduled_start = data.scheduled_start
        appointment.scheduled_end = data.scheduled_end
        appointment.status = AppointmentStatus.SCHEDULED.value
        appointment.confirmed_at = None
        if data.notes is not None:
            appointment.notes = data.notes
        await db.flush()

        logger.info(
            "Riprogrammato appuntamento %s: %s - %s",
            appointment_id,
            data.scheduled_start,
            data.scheduled_end,
        )
        return (await self.annotate(db, [appointment]))[0]

    async def complete(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        data: AppointmentComplete,
    ) -> AppointmentRead:
        """
        Completa l'appuntamento registrando la prestazione e il conto.

        Steps:
        1. Rifiuta un secondo completamento
        2. Crea la prestazione (tipo predefinito se non indicato) oppure
           aggiorna quella già collegata
        3. Imposta completed_at (e confirmed_at se mancante) e collega la prestazione
        4. Il conto è sincronizzato dalla prestazione

        Raises:
            NotFoundError: Appuntamento, voci o prodotti non trovati
            ConflictError: Appuntamento già completato
            InsufficientStockError: Giacenza insufficiente
        """
        appointment = await self._get(db, appointment_id, for_update=True)
        if appointment.status == AppointmentStatus.COMPLETED.value:
            logger.warning("Appuntamento %s già completato", appointment_id)
            raise ConflictError(
                "L'appuntamento è già stato completato",
                error_code="APPOINTMENT_COMPLETED",
            )

        if appointment.attendance_id is None:
            attendance = await attendance_service.create(
                db,
                AttendanceCreate(
                    animal_id=appointment.animal_id,
                    kind=data.kind or AttendanceKind(settings.appointment_default_kind),
                    date=appointment.scheduled_start.astimezone(datetime.timezone.utc).date(),
                    price=data.price,
                    notes=data.notes if data.notes is not None else appointment.notes,
                    catalog_items=data.catalog_items,
                    product_items=data.product_items,
                    due_date=data.due_date,
                    responsible_id=data.responsible_id or appointment.veterinarian_id,
                    payment_condition_id=data.payment_condition_id,
                ),
            )
            attendance_id = attendance.id
        else:
            attendance_id = appointment.attendance_id
            changes = data.model_dump(include=_ATTENDANCE_FIELDS, exclude_unset=True, exclude_none=True)
            if changes:
                await attendance_service.update(
                    db,
                    attendance_id,
                    AttendanceUpdate(
                        **changes,
                        due_date=data.due_date,
                        responsible_id=data.responsible_id,
                        payment_condition_id=data.payment_condition_id,
                    ),
                )
            else:
                await invoice_synchronizer.sync_for_attendance(
                    db,
                    attendance_id,
                    due_date=data.due_date,
                    responsible_id=data.responsible_id,
                    payment_condition_id=data.payment_condition_id,
                )

        now = _now()
        appointment.status = AppointmentStatus.COMPLETED.value
        appointment.completed_at = now
        if appointment.confirmed_at is None:
            appointment.confirmed_at = now
        appointment.attendance_id = attendance_id
        await db.flush()

        logger.info("Completato appuntamento %s con prestazione %s", appointment_id, attendance_id)
        return (await self.annotate(db, [appointment]))[0]

    async def delete(self, db: AsyncSession, appointment_id: uuid.UUID) -> None:
        """
        Elimina un appuntamento senza prestazione collegata.

        Raises:
            NotFoundError: Se l'appuntamento non esiste
            ConflictError: Se è collegato a una prestazione
        """
        appointment = await self._get(db, appointment_id, for_update=True)
        if appointment.attendance_id is not None:
            logger.warning("Eliminazione rifiutata: appuntamento %s con prestazione", appointment_id)
            raise ConflictError(
                "Impossibile eliminare un appuntamento collegato a una prestazione",
                error_code="APPOINTMENT_HAS_ATTENDANCE",
            )

        await db.delete(appointment)
        await db.flush()
        logger.info("Eliminato appuntamento %s", appointment_id)

    # ------------------------------------------------------------
    # Helper
    # ------------------------------------------------------------

    async def _get(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        for_update: bool = False,
    ) -> Appointment:
        query = select(Appointment).where(Appointment.id == appointment_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        appointment = result.scalar_one_or_none()
        if appointment is None:
            logger.warning("Appuntamento non trovato: %s", appointment_id)
            raise NotFoundError(f"Appuntamento con ID {appointment_id} non trovato")
        return appointment

    @staticmethod
    def _ensure_not_completed(appointment: Appointment) -> None:
        if appointment.status == AppointmentStatus.COMPLETED.value:
            raise ConflictError(
                "L'appuntamento è già completato e non può essere modificato",
                error_code="APPOINTMENT_COMPLETED",
            )

    @staticmethod
    def _validate_interval(start: datetime.datetime, end: datetime.datetime) -> None:
        try:
            validate_interval(start, end)
        except ValueError as e:
            raise BusinessValidationError(str(e)) from e

    async def _validate_participants(
        self,
        db: AsyncSession,
        animal_id: uuid.UUID,
        owner_id: uuid.UUID,
        veterinarian_id: uuid.UUID,
        assistant_id: Optional[uuid.UUID],
    ) -> None:
        """
        Raises:
            NotFoundError: Animale, veterinario o assistente non trovati
            BusinessValidationError: Regole di coerenza violate
        """
        animal = await db.get(Animal, animal_id)
        if animal is None:
            raise NotFoundError(f"Animale con ID {animal_id} non trovato")
        if animal.owner_id != owner_id:
            raise BusinessValidationError("L'animale non appartiene al tutore selezionato")

        veterinarian = await db.get(Collaborator, veterinarian_id)
        if veterinarian is None:
            raise NotFoundError(f"Veterinario con ID {veterinarian_id} non trovato")
        if not veterinarian.is_active:
            raise BusinessValidationError("Il veterinario indicato non è attivo")
        if not veterinarian.is_veterinarian:
            raise BusinessValidationError("Il collaboratore indicato non è un veterinario")

        if assistant_id is None:
            return
        if assistant_id == veterinarian_id:
            raise BusinessValidationError("L'assistente deve essere diverso dal veterinario")
        assistant = await db.get(Collaborator, assistant_id)
        if assistant is None:
            raise NotFoundError(f"Assistente con ID {assistant_id} non trovato")
        if not assistant.is_active:
            raise BusinessValidationError("L'assistente indicato non è attivo")


# Istanza singleton del service
appointment_service = AppointmentService()
