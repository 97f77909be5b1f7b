import logging
from typing import List, Tuple

from fastapi import HTTPException, status

from agenda.services.backend.backend_client import BackendAuthError, BackendError

logger = logging.getLogger(__name__)


async def token_not_provided_exception() -> None:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Token not provided"
    )


async def invalid_token_format_exception() -> None:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token format"
    )


async def backend_failure_exception(error: BackendError, action: str) -> None:
    """Errores de red o del servidor: se informan y la operación queda para reintentar."""
    if isinstance(error, BackendAuthError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="El backend rechazó las credenciales del docente."
        )
    logger.error(f"Fallo del backend al {action}: {error} (status={error.status_code}, detail={error.detail})")
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Error al {action}. Intenta nuevamente."
    )


async def cell_closed_exception() -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="La unidad no funciona en este día y horario."
    )


async def cell_occupied_exception() -> None:
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Este horario ya está reservado por un alumno y no se puede modificar."
    )


async def cell_removal_only_exception(state_label: str) -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Este horario está {state_label}; solo se puede eliminar."
    )


async def cell_not_removable_exception(expected_label: str) -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Este horario no está {expected_label}."
    )


async def no_selectable_slots_exception(occupied: int) -> None:
    if occupied:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"No hay horarios libres: {occupied} horario(s) ya están reservados por alumnos."
        )
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="No hay horarios libres para seleccionar."
    )


async def empty_selection_exception() -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Selecciona al menos un horario antes de guardar."
    )


async def selection_conflict_exception(conflicts: List[Tuple[str, str]]) -> None:
    labels = ", ".join(f"{day_key} {time_value[:5]}" for day_key, time_value in conflicts)
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=(
            f"{len(conflicts)} horario(s) seleccionado(s) ya fueron reservados por alumnos ({labels}). "
            "Quítalos de la selección; no se guardó ningún horario."
        )
    )


async def block_dates_required_exception() -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Completa las fechas del bloqueo."
    )


async def invalid_block_range_exception(detail: str) -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail
    )


async def academy_without_hours_exception() -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Esta unidad todavía no tiene horarios de funcionamiento configurados."
    )
