"""
Modelli Database SQLAlchemy
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Import centralizzato di tutti i modelli per create_all e usage generico.

Modelli:
- Owner, Animal: Anagrafica tutori e animali
- Collaborator: Veterinari e assistenti con i loro turni
- Appointment: Agenda appuntamenti
- ServiceDefinition: Listino prestazioni
- Attendance, AttendanceCatalogItem, AttendanceProductItem: Prestazioni erogate
- Product, StockMovement: Magazzino
- InvoiceStatus, PaymentCondition, Invoice, InvoiceItem, InvoiceInstallment: Conti
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from app.models.owner import Animal, Owner
from app.models.collaborator import Collaborator
from app.models.product import Product, StockMovement
from app.models.attendance import (
    Attendance,
    AttendanceCatalogItem,
    AttendanceProductItem,
    ServiceDefinition,
)
from app.models.appointment import Appointment
from app.models.invoice import (
    Invoice,
    InvoiceInstallment,
    InvoiceItem,
    InvoiceStatus,
    PaymentCondition,
)

__all__ = [
    "Base",
    "Owner",
    "Animal",
    "Collaborator",
    "Product",
    "StockMovement",
    "ServiceDefinition",
    "Attendance",
    "AttendanceCatalogItem",
    "AttendanceProductItem",
    "Appointment",
    "InvoiceStatus",
    "PaymentCondition",
    "Invoice",
    "InvoiceItem",
    "InvoiceInstallment",
]
