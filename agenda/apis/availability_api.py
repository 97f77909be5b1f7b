from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.apis.deps import get_agenda_context, get_backend_client, get_db
from agenda.cores.rate_limiter import WRITE_LIMIT, limiter
from agenda.schemas.availability.grid_schema import (
    BlockPeriodRequest, CellRequest, ClearDateRequest, DateRequest, RemoveBlockRequest,
    RemoveSlotRequest, SaveRequest, TimeAcrossDaysRequest,
)
from agenda.services.availability.availability_service import (
    clear_date, get_availability_grid, remove_block, remove_saved_slot, save_selection,
    select_all_for_date, select_time_across_days, toggle_cell, unselect_all,
)
from agenda.services.availability.block_service import block_period
from agenda.services.availability.context import AgendaContext
from agenda.services.backend.backend_client import AgendaBackendClient

router = APIRouter()


def _delete_message(report, done_message: str) -> str:
    if not report.confirmed:
        return f"{report.requested} horario(s) se eliminarán. Confirma para continuar."
    if report.requested == 0:
        return "Ningún horario disponible para eliminar"
    if report.failed:
        return f"{report.succeeded} horario(s) eliminado(s); {report.failed} no pudieron eliminarse"
    return done_message.format(count=report.succeeded)


@router.get("/grid")
async def get_grid(
    start_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    """
    Grilla de 7 días desde `start_date` (hoy si no se indica) con el estado de
    cada horario: CLOSED, OCCUPIED, BLOCKED, PENDING_SELECTION, SAVED_AVAILABLE u OPEN.
    """
    grid = await get_availability_grid(db, client, ctx, start_date)
    return {
        "success": True,
        "message": "Grilla obtenida exitosamente",
        "data": grid
    }


@router.post("/selection/toggle")
async def toggle_selection(
    body: CellRequest,
    db: AsyncSession = Depends(get_db),
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    change = await toggle_cell(db, client, ctx, body.date, body.time)
    message = "Horario agregado a la selección" if change.added else "Horario quitado de la selección"
    return {
        "success": True,
        "message": message,
        "data": change
    }


@router.post("/selection/date")
async def select_date(
    body: DateRequest,
    db: AsyncSession = Depends(get_db),
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    """Selecciona todos los horarios libres de una fecha."""
    change = await select_all_for_date(db, client, ctx, body.date)
    return {
        "success": True,
        "message": f"{len(change.added)} horario(s) seleccionado(s)",
        "data": change
    }


@router.post("/selection/time")
async def select_time(
    body: TimeAcrossDaysRequest,
    db: AsyncSession = Depends(get_db),
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    """Selecciona la misma hora en todos los días visibles donde está libre."""
    change = await select_time_across_days(db, client, ctx, body.time, body.start_date)
    return {
        "success": True,
        "message": f"{len(change.added)} horario(s) seleccionado(s)",
        "data": change
    }


@router.delete("/selection")
async def clear_selection(
    db: AsyncSession = Depends(get_db),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    removed = await unselect_all(db, ctx)
    return {
        "success": True,
        "message": "Selección limpiada",
        "data": {"removed": removed}
    }


@router.post("/save")
@limiter.limit(WRITE_LIMIT)
async def save_availability(
    request: Request,
    body: SaveRequest,
    db: AsyncSession = Depends(get_db),
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    """
    Guarda la selección pendiente. Si algún horario ya fue reservado por un
    alumno, no se guarda nada (409).
    Con `apply_mode` (week, month, always) la selección se repite cada semana.
    """
    report = await save_selection(db, client, ctx, body.start_date, body.notes, body.apply_mode)
    message = f"{report.created} horario(s) disponibilizado(s)"
    if report.skipped:
        message += f"; {report.skipped} ya existían"
    if report.omitted:
        message += f"; {report.omitted} repetición(es) omitida(s) por no estar libres"
    return {
        "success": True,
        "message": message,
        "data": report
    }


@router.post("/dates/clear")
@limiter.limit(WRITE_LIMIT)
async def clear_day(
    request: Request,
    body: ClearDateRequest,
    db: AsyncSession = Depends(get_db),
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    """
    Elimina los horarios disponibles guardados de una fecha.
    Sin `confirm: true` solo devuelve lo que se eliminaría.
    """
    report = await clear_date(db, client, ctx, body.date, body.confirm)
    return {
        "success": report.failed == 0,
        "message": _delete_message(report, "{count} horario(s) eliminado(s) del día"),
        "data": report
    }


@router.post("/slots/remove")
@limiter.limit(WRITE_LIMIT)
async def remove_slot(
    request: Request,
    body: RemoveSlotRequest,
    db: AsyncSession = Depends(get_db),
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    report = await remove_saved_slot(
        db, client, ctx, body.date, body.time, body.mode, body.start_date, body.confirm
    )
    return {
        "success": report.failed == 0,
        "message": _delete_message(report, "{count} horario(s) eliminado(s)"),
        "data": report
    }


@router.post("/blocks/remove")
@limiter.limit(WRITE_LIMIT)
async def remove_blocked_slot(
    request: Request,
    body: RemoveBlockRequest,
    db: AsyncSession = Depends(get_db),
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    report = await remove_block(db, client, ctx, body.date, body.time, body.confirm)
    return {
        "success": report.failed == 0,
        "message": _delete_message(report, "Bloqueo eliminado"),
        "data": report
    }


@router.post("/blocks")
@limiter.limit(WRITE_LIMIT)
async def create_block(
    request: Request,
    body: BlockPeriodRequest,
    client: AgendaBackendClient = Depends(get_backend_client),
    ctx: AgendaContext = Depends(get_agenda_context),
):
    """Bloquea todos los horarios de la unidad entre `start_date` y `end_date` (vacaciones, compromisos)."""
    report = await block_period(client, ctx, body.start_date, body.end_date, body.notes)
    return {
        "success": not report.failed_days,
        "message": f"{report.created} horario(s) bloqueado(s)",
        "data": report
    }
