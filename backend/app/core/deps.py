"""
Dependency Injection per l'autorizzazione
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

L'operatore è il collaboratore indicato nell'header X-Operator-Id;
l'autenticazione è demandata al gateway che precede il servizio.
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthorizationError
from app.core.permissions import has_permission
from app.models.collaborator import Collaborator

logger = logging.getLogger(__name__)


async def get_current_operator(
    operator_id: Optional[uuid.UUID] = Header(None, alias="X-Operator-Id"),
    db: AsyncSession = Depends(get_db),
) -> Optional[Collaborator]:
    """
    Dependency per ottenere il collaboratore che esegue la richiesta.

    Returns:
        Il collaboratore, oppure None con la verifica permessi disattivata

    Raises:
        AuthorizationError: Se l'header manca o il collaboratore
            non esiste o non è attivo
    """
    if not settings.permissions_enabled:
        return None

    if operator_id is None:
        raise AuthorizationError("Operatore non indicato", error_code="OPERATOR_REQUIRED")

    operator = await db.get(Collaborator, operator_id)
    if operator is None or not operator.is_active:
        logger.warning("Operatore non valido: %s", operator_id)
        raise AuthorizationError("Operatore non trovato o non attivo", error_code="OPERATOR_INVALID")
    return operator


def require_permission(*permissions: str):
    """
    Factory di una dependency che verifica i permessi del ruolo.

    Basta uno dei permessi indicati; gli alias sono espansi
    (es. "products:write" implica "products:read").

    Example:
        @router.post("/", dependencies=[Depends(require_permission("products:write"))])
        async def create_product(...):
            ...
    """
    if not permissions:
        raise ValueError("Indicare almeno un permesso da verificare")

    async def permission_checker(
        operator: Optional[Collaborator] = Depends(get_current_operator),
    ) -> Optional[Collaborator]:
        if operator is None:
            return None
        if not has_permission(operator.role, *permissions):
            logger.warning(
                "Permesso negato a %s (ruolo %s): richiesto %s",
                operator.id,
                operator.role,
                " o ".join(permissions),
            )
            raise AuthorizationError(
                f"Il ruolo {operator.role} non dispone del permesso richiesto",
                extra={"required": list(permissions)},
            )
        return operator

    return permission_checker
