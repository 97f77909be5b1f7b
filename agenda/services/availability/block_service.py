from datetime import date
from typing import Optional
import logging

from agenda.cores.time_utils import format_day_key, format_time_label, get_date_range
from agenda.schemas.availability.grid_schema import BlockReport
from agenda.services.availability.context import AgendaContext
from agenda.services.availability.grid_reconciler import OperatingTemplate
from agenda.services.backend.backend_client import AgendaBackendClient, BackendError
from agenda.services.validation.exception import (
    academy_without_hours_exception, backend_failure_exception, block_dates_required_exception,
    invalid_block_range_exception,
)

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_NOTES = "Bloqueo"


async def block_period(client: AgendaBackendClient, ctx: AgendaContext, start_date: Optional[date],
                       end_date: Optional[date], notes: Optional[str] = None) -> BlockReport:
    """
    Bloquea (vacaciones, compromisos) todos los horarios de la academia en cada
    día del período. Se hace una llamada por día; si un día falla se anota y
    se sigue con los demás.
    """
    if not start_date or not end_date:
        await block_dates_required_exception()
    if end_date < start_date:
        await invalid_block_range_exception("La fecha final del bloqueo no puede ser anterior a la inicial.")

    days = get_date_range(start_date, end_date)
    if len(days) > ctx.max_block_days:
        await invalid_block_range_exception(f"El bloqueo no puede superar {ctx.max_block_days} días.")

    try:
        slots = await client.list_time_slots(ctx.academy_id)
    except BackendError as e:
        await backend_failure_exception(e, "cargar los horarios de la unidad")

    hours = [format_time_label(t) for t in OperatingTemplate(slots, academy_id=ctx.academy_id).times]
    if not hours:
        await academy_without_hours_exception()

    report = BlockReport(days=len(days), hours_per_day=len(hours))
    for day in days:
        try:
            result = await client.create_custom_block(
                ctx.teacher_id, ctx.academy_id, day, hours, notes or DEFAULT_BLOCK_NOTES
            )
        except BackendError as e:
            report.failed_days.append(format_day_key(day))
            logger.warning(f"No se pudo bloquear el día {format_day_key(day)}: {e}")
            continue
        report.created += len(result.created)
        report.skipped += len(result.skipped)

    logger.info(
        f"Bloqueo {format_day_key(start_date)} a {format_day_key(end_date)} - docente {ctx.teacher_id}: "
        f"{report.created} creado(s), {report.skipped} omitido(s), {len(report.failed_days)} día(s) con error"
    )
    return report
