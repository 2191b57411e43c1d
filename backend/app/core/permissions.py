"""
Permessi per ruolo
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Tabelle statiche ruolo → permessi e chiusura degli alias.
Funzioni pure: nessun accesso al database.
"""

from typing import Iterable

# ------------------------------------------------------------
# Alias: un permesso implica gli altri elencati
# ------------------------------------------------------------
PERMISSION_ALIASES: dict[str, frozenset[str]] = {
    # Nome storico del modulo cassa
    "cashier:access": frozenset({"cashier:manage"}),
    "cashier:manage": frozenset({"invoices:write"}),
    "appointments:write": frozenset({"appointments:read"}),
    "attendances:write": frozenset({"attendances:read"}),
    "invoices:write": frozenset({"invoices:read"}),
    "products:write": frozenset({"products:read"}),
    "catalog:write": frozenset({"catalog:read"}),
}

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "veterinarian": frozenset({
        "appointments:write",
        "attendances:write",
        "invoices:write",
        "products:read",
        "catalog:write",
    }),
    "assistant": frozenset({
        "appointments:read",
        "attendances:write",
        "products:write",
        "catalog:read",
    }),
    "reception": frozenset({
        "appointments:write",
        "attendances:read",
        "cashier:access",
        "products:read",
        "catalog:read",
    }),
}


def expand_permissions(requested: Iterable[str]) -> frozenset[str]:
    """
    Restituisce la chiusura transitiva dei permessi richiesti.

    Args:
        requested: Permessi di partenza (anche alias)

    Returns:
        Insieme dei permessi richiesti più tutti quelli implicati
    """
    closure: set[str] = set()
    pending = list(requested)
    while pending:
        permission = pending.pop()
        if permission in closure:
            continue
        closure.add(permission)
        pending.extend(PERMISSION_ALIASES.get(permission, ()))
    return frozenset(closure)


def role_permissions(role: str) -> frozenset[str]:
    """Permessi effettivi di un ruolo; ruolo sconosciuto → nessun permesso."""
    return expand_permissions(ROLE_PERMISSIONS.get(role, frozenset()))


def has_permission(role: str, *permissions: str) -> bool:
    """True se il ruolo possiede almeno uno dei permessi indicati."""
    if not permissions:
        raise ValueError("Indicare almeno un permesso da verificare")
    granted = role_permissions(role)
    return any(permission in granted for permission in permissions)
