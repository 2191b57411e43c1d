"""
Mixin SQLAlchemy per modelli
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Colonne comuni (id UUID, timestamp, flag di attivazione) condivise dai modelli.
"""

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


class SoftDeleteMixin:
    """
    Flag is_active per anagrafiche che non vengono mai cancellate fisicamente
    (collaboratori, prestazioni a listino).
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="False = disattivato, non selezionabile in nuove operazioni",
    )


class TimestampMixin:
    """
    Aggiunge created_at e updated_at.

    created_at è valorizzato dal database; updated_at è aggiornato
    dal listener before_flush definito in questo modulo.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Data/ora di creazione del record",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Data/ora ultimo aggiornamento del record",
    )


class UUIDMixin:
    """Primary key UUID generata lato applicazione."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Aggiorna updated_at per gli oggetti nuovi e per quelli realmente modificati.

    Args:
        session: Sessione SQLAlchemy
        flush_context: Contesto del flush
        instances: Non usato
    """
    now = datetime.datetime.now(datetime.timezone.utc)

    for obj in session.dirty:
        if isinstance(obj, TimestampMixin) and session.is_modified(obj, include_collections=False):
            obj.updated_at = now

    for obj in session.new:
        if isinstance(obj, TimestampMixin):
            obj.updated_at = now
