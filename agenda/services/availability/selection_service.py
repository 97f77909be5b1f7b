from typing import Iterable, Set, Tuple
import logging

from sqlalchemy import and_, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from agenda.models.availability.pending_selection import PendingSelection

logger = logging.getLogger(__name__)

Cell = Tuple[str, str]


def _owner_filter(teacher_id: str, academy_id: str):
    return and_(
        PendingSelection.teacher_id == teacher_id,
        PendingSelection.academy_id == academy_id,
    )


async def get_pending_cells(db: AsyncSession, teacher_id: str, academy_id: str) -> Set[Cell]:
    """Selección pendiente del docente en la academia, como conjunto de (fecha, hora)."""
    result = await db.execute(
        select(PendingSelection.day_key, PendingSelection.time).where(_owner_filter(teacher_id, academy_id))
    )
    return {(row.day_key, row.time) for row in result.all()}


async def add_pending_cells(db: AsyncSession, teacher_id: str, academy_id: str, cells: Iterable[Cell]) -> int:
    """
    Agrega las celdas que todavía no estén seleccionadas. Si otro request
    insertó la misma celda entre la lectura y el commit, se reintenta fila por
    fila y la celda duplicada se ignora.
    """
    existing = await get_pending_cells(db, teacher_id, academy_id)
    new_cells = sorted(set(cells) - existing)
    if not new_cells:
        return 0

    db.add_all([
        PendingSelection(teacher_id=teacher_id, academy_id=academy_id, day_key=day_key, time=time_value)
        for day_key, time_value in new_cells
    ])
    try:
        await db.commit()
        return len(new_cells)
    except IntegrityError:
        await db.rollback()
        logger.info(f"Selección concurrente - docente {teacher_id}: se reintenta celda por celda")

    added = 0
    for day_key, time_value in new_cells:
        db.add(PendingSelection(teacher_id=teacher_id, academy_id=academy_id, day_key=day_key, time=time_value))
        try:
            await db.commit()
            added += 1
        except IntegrityError:
            await db.rollback()
    return added


async def remove_pending_cells(db: AsyncSession, teacher_id: str, academy_id: str, cells: Iterable[Cell]) -> int:
    removed = 0
    for day_key, time_value in set(cells):
        result = await db.execute(
            delete(PendingSelection).where(
                _owner_filter(teacher_id, academy_id),
                PendingSelection.day_key == day_key,
                PendingSelection.time == time_value,
            )
        )
        removed += result.rowcount or 0
    await db.commit()
    return removed


async def remove_pending_for_date(db: AsyncSession, teacher_id: str, academy_id: str, day_key: str) -> int:
    result = await db.execute(
        delete(PendingSelection).where(_owner_filter(teacher_id, academy_id), PendingSelection.day_key == day_key)
    )
    await db.commit()
    return result.rowcount or 0


async def clear_pending_cells(db: AsyncSession, teacher_id: str, academy_id: str) -> int:
    result = await db.execute(delete(PendingSelection).where(_owner_filter(teacher_id, academy_id)))
    await db.commit()
    removed = result.rowcount or 0
    logger.info(f"Selección pendiente limpiada - docente {teacher_id}, academia {academy_id}: {removed} horario(s)")
    return removed
