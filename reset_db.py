import asyncio
import os
import sys

# Aggiungi backend/ alla PYTHONPATH per importare app.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.config import get_settings
from app.core.database import Database
from app.models import Base, InvoiceStatus, PaymentCondition

INVOICE_STATUSES = [
    ("open", "Aperto"),
    ("partially_paid", "Parzialmente pagato"),
    ("paid", "Saldato"),
    ("blocked", "Bloccato"),
]

# (nome, giorni, rate)
PAYMENT_CONDITIONS = [
    ("Contanti", 0, 1),
    ("30 giorni", 30, 1),
    ("60 giorni", 60, 1),
    ("Carta 2 rate", 30, 2),
    ("Carta 3 rate", 30, 3),
]


async def reset():
    database = Database.from_settings(get_settings())
    try:
        print("Connessione al database, eliminazione tabelle...")
        async with database.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            print("Tabelle eliminate. Creazione nuove tabelle...")
            await conn.run_sync(Base.metadata.create_all)

        async with database.session() as session:
            session.add_all(InvoiceStatus(slug=slug, name=name) for slug, name in INVOICE_STATUSES)
            session.add_all(
                PaymentCondition(name=name, term_days=days, installments=installments)
                for name, days, installments in PAYMENT_CONDITIONS
            )
            await session.commit()
        print("Database resettato con successo!")
    finally:
        await database.dispose()

if __name__ == "__main__":
    asyncio.run(reset())
