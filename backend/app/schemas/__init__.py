"""
Schemas Pydantic per il progetto Vet Manager

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle richieste e risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from app.schemas import AppointmentRead, InvoiceRead, etc.

from app.schemas.attendance import (
    ATTENDANCE_KIND_LABELS,
    AttendanceCreate,
    AttendanceItemsInput,
    AttendanceKind,
    AttendanceList,
    AttendanceRead,
    AttendanceUpdate,
    CatalogItemInput,
    CatalogItemRead,
    ProductItemInput,
    ProductItemRead,
)
from app.schemas.appointment import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentList,
    AppointmentRead,
    AppointmentReschedule,
    AppointmentStatus,
    AppointmentUpdate,
    CalendarCapacity,
    CalendarRange,
    CalendarRead,
    CalendarSummary,
    CalendarView,
)
from app.schemas.invoice import (
    InstallmentPayment,
    InvoiceGenerate,
    InvoiceInstallmentRead,
    InvoiceItemRead,
    InvoiceList,
    InvoiceManualItemCreate,
    InvoicePayment,
    InvoiceRead,
    InvoiceStatusRead,
    InvoiceStatusSlug,
    InvoiceSummary,
    PaymentMethod,
)
from app.schemas.product import (
    MovementType,
    ProductCreate,
    ProductList,
    ProductRead,
    ProductUpdate,
    StockAdjustment,
    StockLoad,
    StockMovementRead,
)
from app.schemas.payment_condition import PaymentConditionPayload, PaymentConditionRead
from app.schemas.service_definition import ServiceDefinitionCreate, ServiceDefinitionRead

__all__ = [
    # Attendance
    "ATTENDANCE_KIND_LABELS",
    "AttendanceCreate",
    "AttendanceItemsInput",
    "AttendanceKind",
    "AttendanceList",
    "AttendanceRead",
    "AttendanceUpdate",
    "CatalogItemInput",
    "CatalogItemRead",
    "ProductItemInput",
    "ProductItemRead",
    # Appointment
    "AppointmentComplete",
    "AppointmentCreate",
    "AppointmentList",
    "AppointmentRead",
    "AppointmentReschedule",
    "AppointmentStatus",
    "AppointmentUpdate",
    "CalendarCapacity",
    "CalendarRange",
    "CalendarRead",
    "CalendarSummary",
    "CalendarView",
    # Invoice
    "InstallmentPayment",
    "InvoiceGenerate",
    "InvoiceInstallmentRead",
    "InvoiceItemRead",
    "InvoiceList",
    "InvoiceManualItemCreate",
    "InvoicePayment",
    "InvoiceRead",
    "InvoiceStatusRead",
    "InvoiceStatusSlug",
    "InvoiceSummary",
    "PaymentMethod",
    # Product
    "MovementType",
    "ProductCreate",
    "ProductList",
    "ProductRead",
    "ProductUpdate",
    "StockAdjustment",
    "StockLoad",
    "StockMovementRead",
    # Lookup
    "PaymentConditionPayload",
    "PaymentConditionRead",
    "ServiceDefinitionCreate",
    "ServiceDefinitionRead",
]
