from typing import AsyncGenerator, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.configs.settings import settings
from agenda.cores.db import async_session
from agenda.services.availability.context import AgendaContext
from agenda.services.backend.backend_client import AgendaBackendClient
from agenda.services.validation.exception import invalid_token_format_exception, token_not_provided_exception

"""
Dependencias de las rutas: sesión de base de datos, cliente del backend con
el token del docente y el contexto (docente + academia) de la grilla.
"""
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    session = async_session()
    try:
        yield session
    finally:
        await session.close()


async def get_access_token(authorization: Optional[str] = Header(None)) -> str:
    """El token no se valida aquí: se reenvía al backend, que es quien autentica."""
    if not authorization:
        await token_not_provided_exception()

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        await invalid_token_format_exception()
    return parts[1]


async def get_backend_client(
    access_token: str = Depends(get_access_token),
) -> AsyncGenerator[AgendaBackendClient, None]:
    client = AgendaBackendClient(
        base_url=settings.BACKEND_API_URL,
        access_token=access_token,
        timeout=settings.BACKEND_TIMEOUT_SECONDS,
    )
    try:
        yield client
    finally:
        await client.aclose()


async def get_agenda_context(teacher_id: str, academy_id: str) -> AgendaContext:
    return AgendaContext(teacher_id=teacher_id, academy_id=academy_id)
