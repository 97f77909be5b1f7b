"""
Operaciones de la grilla de disponibilidad del docente: consultar, marcar y
desmarcar horarios, guardar la selección y eliminar horarios guardados.

Cada operación vuelve a consultar el backend antes de decidir, porque un
alumno puede reservar un horario en cualquier momento.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional, Set, Tuple
import logging

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.cores.time_utils import (
    format_day_key, get_js_day_of_week, get_local_today, get_week_dates, get_window_bounds_utc, normalize_time,
)
from agenda.schemas.availability.backend_schema import BookingRecord
from agenda.schemas.availability.grid_schema import (
    AvailabilityGrid, CellState, DeleteReport, DeleteTarget, SaveReport, SelectionChange,
)
from agenda.services.availability.context import AgendaContext
from agenda.services.availability.grid_reconciler import (
    BookingIndex, OperatingTemplate, build_bulk_slots, build_cell, build_grid, classify_cell,
    find_occupied_conflicts, get_cell_booking_id, get_open_cells_for_date, get_open_cells_for_time,
    expand_weekly_selection, get_apply_window, get_pending_window,
)
from agenda.services.availability.selection_service import (
    add_pending_cells, clear_pending_cells, get_pending_cells, remove_pending_cells, remove_pending_for_date,
)
from agenda.services.backend.backend_client import AgendaBackendClient, BackendError
from agenda.services.validation.exception import (
    backend_failure_exception, cell_closed_exception, cell_not_removable_exception, cell_occupied_exception,
    cell_removal_only_exception, empty_selection_exception, no_selectable_slots_exception,
    selection_conflict_exception,
)

logger = logging.getLogger(__name__)

GRID_DAYS = 7


@dataclass
class GridSnapshot:
    days: List[date]
    template: OperatingTemplate
    index: BookingIndex


async def load_snapshot(client: AgendaBackendClient, ctx: AgendaContext, start: date,
                        days: int = GRID_DAYS) -> GridSnapshot:
    """
    Trae del backend el horario de la academia y los bookings del docente en la ventana.
    Si falla, no se toca nada del estado local.
    """
    tz = ctx.tz
    window_from, window_to = get_window_bounds_utc(start, days, tz)
    try:
        slots = await client.list_time_slots(ctx.academy_id)
        bookings = await client.list_bookings(ctx.teacher_id, window_from, window_to)
    except BackendError as e:
        await backend_failure_exception(e, "cargar los horarios de la unidad")

    return GridSnapshot(
        days=get_week_dates(start, days),
        template=OperatingTemplate(slots, academy_id=ctx.academy_id),
        index=BookingIndex(bookings, tz, academy_id=ctx.academy_id, teacher_id=ctx.teacher_id),
    )


def _resolve_start(ctx: AgendaContext, start_date: Optional[date]) -> date:
    return start_date or get_local_today(ctx.tz)


async def get_availability_grid(db: AsyncSession, client: AgendaBackendClient, ctx: AgendaContext,
                                start_date: Optional[date] = None) -> AvailabilityGrid:
    snapshot = await load_snapshot(client, ctx, _resolve_start(ctx, start_date))
    pending = await get_pending_cells(db, ctx.teacher_id, ctx.academy_id)
    return build_grid(ctx.teacher_id, ctx.academy_id, snapshot.days, snapshot.template,
                      snapshot.index, pending, ctx.timezone_name)


async def toggle_cell(db: AsyncSession, client: AgendaBackendClient, ctx: AgendaContext,
                      day: date, time_value: str) -> SelectionChange:
    """
    Click en una celda: OPEN pasa a pendiente y PENDING_SELECTION vuelve a OPEN.
    Las celdas ocupadas se rechazan con aviso; bloqueadas y guardadas solo se eliminan.
    Una celda pendiente siempre se puede quitar, aunque ahora figure ocupada.
    """
    time_value = normalize_time(time_value)
    snapshot = await load_snapshot(client, ctx, day, days=1)
    pending = await get_pending_cells(db, ctx.teacher_id, ctx.academy_id)
    state = classify_cell(day, time_value, snapshot.template, snapshot.index, pending)
    cell = (format_day_key(day), time_value)

    if cell in pending:
        if state != CellState.PENDING_SELECTION:
            # un alumno reservó o se bloqueó después de marcarla: solo se puede quitar
            logger.warning(f"Docente {ctx.teacher_id} quitó de la selección un horario {state.value}: {cell}")
    elif state == CellState.CLOSED:
        await cell_closed_exception()
    elif state == CellState.OCCUPIED:
        logger.warning(f"Docente {ctx.teacher_id} intentó marcar un horario ocupado: {cell}")
        await cell_occupied_exception()
    elif state == CellState.BLOCKED:
        await cell_removal_only_exception("bloqueado")
    elif state == CellState.SAVED_AVAILABLE:
        await cell_removal_only_exception("guardado como disponible")

    if cell in pending:
        await remove_pending_cells(db, ctx.teacher_id, ctx.academy_id, [cell])
        pending.discard(cell)
        updated = build_cell(day, time_value, snapshot.template, snapshot.index, pending)
        return SelectionChange(removed=[updated], pending_count=len(pending))

    await add_pending_cells(db, ctx.teacher_id, ctx.academy_id, [cell])
    pending.add(cell)
    updated = build_cell(day, time_value, snapshot.template, snapshot.index, pending)
    return SelectionChange(added=[updated], pending_count=len(pending))


async def _add_selection(db: AsyncSession, ctx: AgendaContext, snapshot: GridSnapshot,
                         pending: Set[Tuple[str, str]], cells: List[Tuple[str, str]]) -> SelectionChange:
    await add_pending_cells(db, ctx.teacher_id, ctx.academy_id, cells)
    pending.update(cells)
    added = [
        build_cell(date.fromisoformat(day_key), time_value, snapshot.template, snapshot.index, pending)
        for day_key, time_value in cells
    ]
    return SelectionChange(added=added, pending_count=len(pending))


async def select_all_for_date(db: AsyncSession, client: AgendaBackendClient, ctx: AgendaContext,
                              day: date) -> SelectionChange:
    """Agrega a la selección todas las celdas OPEN de la fecha. Nunca agrega ocupadas ni cerradas."""
    snapshot = await load_snapshot(client, ctx, day, days=1)
    pending = await get_pending_cells(db, ctx.teacher_id, ctx.academy_id)
    cells, states = get_open_cells_for_date(day, snapshot.template, snapshot.index, pending)

    if not cells:
        logger.warning(f"Sin horarios seleccionables el {format_day_key(day)} - estados: {dict(states)}")
        if states[CellState.CLOSED] == sum(states.values()):
            await cell_closed_exception()
        await no_selectable_slots_exception(states[CellState.OCCUPIED])

    return await _add_selection(db, ctx, snapshot, pending, cells)


async def select_time_across_days(db: AsyncSession, client: AgendaBackendClient, ctx: AgendaContext,
                                  time_value: str, start_date: Optional[date] = None) -> SelectionChange:
    """Agrega la misma hora en cada día visible donde la celda está OPEN."""
    snapshot = await load_snapshot(client, ctx, _resolve_start(ctx, start_date))
    pending = await get_pending_cells(db, ctx.teacher_id, ctx.academy_id)
    cells, states = get_open_cells_for_time(time_value, snapshot.days, snapshot.template, snapshot.index, pending)

    if not cells:
        logger.warning(f"Sin días seleccionables para {normalize_time(time_value)} - estados: {dict(states)}")
        if states[CellState.CLOSED] == sum(states.values()):
            await cell_closed_exception()
        await no_selectable_slots_exception(states[CellState.OCCUPIED])

    return await _add_selection(db, ctx, snapshot, pending, cells)


async def unselect_all(db: AsyncSession, ctx: AgendaContext) -> int:
    return await clear_pending_cells(db, ctx.teacher_id, ctx.academy_id)


async def delete_bookings(client: AgendaBackendClient, targets: List[DeleteTarget]) -> DeleteReport:
    """
    Borra los bookings uno por uno. Un fallo no corta el lote: se cuentan
    éxitos y fallos y se informa el total.
    """
    report = DeleteReport(confirmed=True, requested=len(targets), targets=targets)
    for target in targets:
        try:
            await client.delete_booking(target.booking_id)
            report.succeeded += 1
        except BackendError as e:
            report.failed += 1
            report.failed_ids.append(target.booking_id)
            logger.warning(f"No se pudo eliminar el booking {target.booking_id}: {e}")

    if report.failed:
        logger.warning(f"Eliminación parcial: {report.succeeded} de {report.requested} booking(s) eliminados")
    else:
        logger.info(f"{report.succeeded} booking(s) eliminados")
    return report


def _is_future(booking: BookingRecord, now: datetime) -> bool:
    return booking.date > now


async def clear_date(db: AsyncSession, client: AgendaBackendClient, ctx: AgendaContext,
                     day: date, confirm: bool = False) -> DeleteReport:
    """
    Elimina todos los horarios AVAILABLE guardados de la fecha (nunca bloqueados
    ni ocupados). Los que ya pasaron quedan como historial.
    Sin `confirm` solo devuelve lo que se borraría.
    """
    snapshot = await load_snapshot(client, ctx, day, days=1)
    day_key = format_day_key(day)
    now = datetime.now(timezone.utc)
    targets = [
        DeleteTarget(booking_id=booking.id, date=cell[0], time=cell[1])
        for cell, booking in snapshot.index.available_for_day(day_key)
        if _is_future(booking, now)
    ]

    if not confirm:
        return DeleteReport(confirmed=False, requested=len(targets), targets=targets)

    report = await delete_bookings(client, targets)
    await remove_pending_for_date(db, ctx.teacher_id, ctx.academy_id, day_key)
    logger.info(f"Día {day_key} limpiado - docente {ctx.teacher_id}: {report.succeeded}/{report.requested}")
    return report


async def remove_saved_slot(db: AsyncSession, client: AgendaBackendClient, ctx: AgendaContext,
                            day: date, time_value: str, mode: str = "single",
                            start_date: Optional[date] = None, confirm: bool = False) -> DeleteReport:
    """
    Elimina horarios SAVED_AVAILABLE futuros a la hora indicada:
    - single: solo esa celda
    - week: la misma hora en todos los días visibles
    - all_day: cada ocurrencia futura de ese día de la semana, hasta un año
    """
    time_value = normalize_time(time_value)
    pending = await get_pending_cells(db, ctx.teacher_id, ctx.academy_id)

    if mode == "week":
        snapshot = await load_snapshot(client, ctx, start_date or day)
        days = snapshot.days
    elif mode == "all_day":
        first = max(day, get_local_today(ctx.tz))
        snapshot = await load_snapshot(client, ctx, first, days=get_apply_window(first, "always"))
        weekday = get_js_day_of_week(day)
        days = [current for current in snapshot.days if get_js_day_of_week(current) == weekday]
    else:
        snapshot = await load_snapshot(client, ctx, day, days=1)
        state = classify_cell(day, time_value, snapshot.template, snapshot.index, pending)
        if state == CellState.OCCUPIED:
            await cell_occupied_exception()
        if state != CellState.SAVED_AVAILABLE:
            await cell_not_removable_exception("guardado como disponible")
        days = [day]

    now = datetime.now(timezone.utc)
    targets = []
    for current in days:
        cell = (format_day_key(current), time_value)
        state = classify_cell(current, time_value, snapshot.template, snapshot.index, pending)
        if state != CellState.SAVED_AVAILABLE or not _is_future(snapshot.index.available[cell], now):
            continue
        targets.append(DeleteTarget(
            booking_id=get_cell_booking_id(cell, state, snapshot.index),
            date=cell[0],
            time=cell[1],
        ))

    if not confirm:
        return DeleteReport(confirmed=False, requested=len(targets), targets=targets)
    return await delete_bookings(client, targets)


async def remove_block(db: AsyncSession, client: AgendaBackendClient, ctx: AgendaContext,
                       day: date, time_value: str, confirm: bool = False) -> DeleteReport:
    time_value = normalize_time(time_value)
    snapshot = await load_snapshot(client, ctx, day, days=1)
    pending = await get_pending_cells(db, ctx.teacher_id, ctx.academy_id)
    state = classify_cell(day, time_value, snapshot.template, snapshot.index, pending)

    if state == CellState.OCCUPIED:
        await cell_occupied_exception()
    if state != CellState.BLOCKED:
        await cell_not_removable_exception("bloqueado")

    cell = (format_day_key(day), time_value)
    targets = [DeleteTarget(booking_id=get_cell_booking_id(cell, state, snapshot.index), date=cell[0], time=cell[1])]
    if not confirm:
        return DeleteReport(confirmed=False, requested=1, targets=targets)
    return await delete_bookings(client, targets)


async def save_selection(db: AsyncSession, client: AgendaBackendClient, ctx: AgendaContext,
                         start_date: Optional[date] = None, notes: Optional[str] = None,
                         apply_mode: str = "selection") -> SaveReport:
    """
    Guarda la selección pendiente con una sola llamada de creación en bloque.

    Antes de enviar se vuelve a consultar el backend: si algún horario
    pendiente ya fue reservado por un alumno, no se guarda ninguno.

    Con `apply_mode` week/month/always las horas marcadas se repiten en cada
    día de la semana correspondiente de la ventana; las repeticiones que no
    están libres se omiten.
    """
    pending = await get_pending_cells(db, ctx.teacher_id, ctx.academy_id)
    if not pending:
        await empty_selection_exception()

    first_day, span = get_pending_window(pending)
    span = max(span, get_apply_window(first_day, apply_mode))
    snapshot = await load_snapshot(client, ctx, first_day, days=span)

    conflicts = find_occupied_conflicts(pending, snapshot.index)
    if conflicts:
        logger.warning(f"Guardado cancelado - docente {ctx.teacher_id}: {len(conflicts)} conflicto(s) {conflicts}")
        await selection_conflict_exception(conflicts)

    cells, omitted = pending, []
    if apply_mode != "selection":
        cells, omitted = expand_weekly_selection(pending, snapshot.days, snapshot.template, snapshot.index)
        logger.info(
            f"Selección repetida ({apply_mode}, {span} días): {len(cells)} horario(s), {len(omitted)} omitido(s)"
        )

    slots = build_bulk_slots(cells, ctx.tz, ctx.slot_duration_minutes, notes or ctx.availability_notes)
    try:
        result = await client.bulk_create_availability(ctx.teacher_id, ctx.academy_id, slots)
    except BackendError as e:
        await backend_failure_exception(e, "guardar la disponibilidad")

    await clear_pending_cells(db, ctx.teacher_id, ctx.academy_id)
    logger.info(
        f"Disponibilidad guardada - docente {ctx.teacher_id}, academia {ctx.academy_id}: "
        f"{result.created} creado(s), {result.skipped} omitido(s)"
    )

    report = SaveReport(
        requested=len(slots),
        created=result.created,
        skipped=result.skipped,
        apply_mode=apply_mode,
        omitted=len(omitted),
    )
    try:
        report.grid = await get_availability_grid(db, client, ctx, start_date or first_day)
    except HTTPException as e:
        # lo guardado ya está en el backend; solo falla la recarga
        logger.warning(f"No se pudo recargar la grilla después de guardar: {e.detail}")
    return report
