"""
Este bloque define la configuración de inicio (lifespan) y creación de la aplicación FastAPI.
Incluye tareas que deben ejecutarse al arrancar la aplicación, como la creación de tablas.
"""

import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from agenda.configs.settings import settings
from agenda.cores.db import Base, engine
from agenda.cores.rate_limiter import limiter, rate_limit_exceeded_handler

from agenda.models.availability.pending_selection import PendingSelection

from agenda.apis.availability_api import router as availability_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Función que se ejecuta al iniciar la aplicación.
    - Crea la tabla de selección pendiente si no existe.
    - Al finalizar, cierra las conexiones del engine.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    await engine.dispose()


def create_app() -> FastAPI:
    """
    Construye y retorna la instancia principal de la aplicación FastAPI.
    - Configura logging, CORS y el limitador de peticiones.
    - Carga las rutas de la grilla de disponibilidad.
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="agenda",
        lifespan=lifespan
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    # límite por defecto (RATE_LIMIT_DEFAULT) para todas las rutas
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        availability_router,
        prefix="/api/availability/teachers/{teacher_id}/academies/{academy_id}",
        tags=["Availability"],
    )

    return app
