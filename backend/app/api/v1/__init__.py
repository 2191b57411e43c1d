"""
API v1 Routes
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from app.api.v1 import (
    appointments,
    attendances,
    invoices,
    payment_conditions,
    products,
    service_definitions,
)

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(appointments.router)
api_v1_router.include_router(attendances.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(products.router)
api_v1_router.include_router(service_definitions.router)
api_v1_router.include_router(payment_conditions.router)

# Esportazione
__all__ = ["api_v1_router"]
