"""
Configurazione Database - SQLAlchemy 2.0 Async
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce il contenitore del database (engine + session factory),
la dependency per FastAPI e la guardia transazionale usata dai router.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import Settings

# Logger per questo modulo
logger = logging.getLogger(__name__)


class Database:
    """
    Handle del database: possiede engine e session factory.

    Creato dalla composition root (lifespan di FastAPI o script),
    che ne gestisce apertura e chiusura. Nessun engine globale a livello di modulo.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ) -> None:
        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,            # Log query in modalità debug
            pool_pre_ping=True,   # Verifica connessione prima di usarla
            pool_size=pool_size,
            max_overflow=max_overflow,
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Costruisce l'handle a partire dalle impostazioni applicative."""
        return cls(
            settings.database_url,
            echo=settings.debug,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    async def connect(self) -> None:
        """
        Verifica che il database sia raggiungibile.

        Raises:
            Exception: Qualsiasi errore del driver, dopo averlo loggato
        """
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Connessione al database stabilita con successo")
        except Exception as e:
            logger.error("Errore connessione database: %s", e)
            raise

    async def dispose(self) -> None:
        """Chiude le connessioni del pool. Da chiamare allo shutdown."""
        await self.engine.dispose()
        logger.info("Connessioni database chiuse")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Apre una sessione e la chiude all'uscita, con rollback in caso di errore."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection per FastAPI.

    Usa l'handle `Database` registrato su `app.state` dal lifespan
    e crea una sessione per ogni richiesta.

    Yields:
        AsyncSession: Sessione database async
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Guardia transazionale per una singola operazione logica.

    Esegue commit se il blocco termina senza errori, altrimenti rollback
    e rilancia l'eccezione: nessuna modifica parziale viene resa persistente.

    Example:
        async with transaction(db):
            invoice = await invoice_service.add_manual_item(db, invoice_id, data)
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise
