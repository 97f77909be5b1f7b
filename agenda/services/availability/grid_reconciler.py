"""
Reconciliación de la grilla de disponibilidad del docente.

Funciones puras: reciben el horario de funcionamiento de la academia, los
bookings del docente y la selección pendiente, y clasifican cada celda
(fecha local, hora) en un único `CellState`. No hacen llamadas de red ni
tocan la base de datos.
"""

import logging
from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from agenda.cores.time_utils import (
    add_months, create_utc_from_local, format_day_key, format_time_label, format_utc_iso,
    get_day_key, get_js_day_of_week, get_local_time, normalize_time,
)
from agenda.schemas.availability.backend_schema import BookingRecord, OperatingSlot
from agenda.schemas.availability.grid_schema import AvailabilityGrid, CellState, GridCell, GridDay

logger = logging.getLogger(__name__)

# (YYYY-MM-DD, HH:MM:SS)
Cell = Tuple[str, str]

DAY_NAMES = ["Domingo", "Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado"]

INTERACTIVE_STATES = {
    CellState.BLOCKED,
    CellState.PENDING_SELECTION,
    CellState.SAVED_AVAILABLE,
    CellState.OPEN,
}


class OperatingTemplate:
    """Plantilla semanal de la academia: qué horas abre cada día de la semana."""

    def __init__(self, slots: Iterable[OperatingSlot], academy_id: Optional[str] = None):
        self.open_cells: Set[Tuple[int, str]] = set()
        all_times: Set[str] = set()
        for slot in slots:
            if academy_id and slot.academy_id != academy_id:
                continue
            all_times.add(slot.time)
            if slot.is_available:
                self.open_cells.add((slot.day_of_week, slot.time))
        self.times: List[str] = sorted(all_times)

    def is_open(self, day_of_week: int, time_value: str) -> bool:
        return (day_of_week, normalize_time(time_value)) in self.open_cells

    def open_times_for(self, day_of_week: int) -> List[str]:
        return sorted(t for dow, t in self.open_cells if dow == day_of_week)


class BookingIndex:
    """
    Bookings del docente agrupados por celda local y por tipo.

    El backend no garantiza un solo booking por celda: dentro de cada tipo gana
    el primero que llega, y los tipos se consultan en orden de prioridad, así
    OCCUPIED le gana a todo sin importar el orden de entrada.

    Un alumno que reservó al docente en otra unidad también ocupa ese horario:
    el filtro por academia solo aplica a bloqueos y disponibilidades.
    """

    def __init__(self, bookings: Iterable[BookingRecord], tz, academy_id: Optional[str] = None,
                 teacher_id: Optional[str] = None):
        self.occupied: Dict[Cell, BookingRecord] = {}
        self.blocked: Dict[Cell, BookingRecord] = {}
        self.available: Dict[Cell, BookingRecord] = {}
        self.available_records: List[Tuple[Cell, BookingRecord]] = []

        for booking in bookings:
            if booking.is_canceled:
                continue
            if teacher_id and booking.teacher_id and booking.teacher_id != teacher_id:
                continue
            other_academy = bool(academy_id and booking.academy_id and booking.academy_id != academy_id)
            if other_academy and not booking.is_occupied:
                continue

            cell = (get_day_key(booking.date, tz), get_local_time(booking.date, tz))
            if booking.is_occupied:
                target = self.occupied
            elif booking.is_blocked:
                target = self.blocked
            else:
                target = self.available
                self.available_records.append((cell, booking))

            if cell in target:
                logger.debug(f"Booking duplicado en {cell}: se conserva {target[cell].id}, se ignora {booking.id}")
                continue
            target[cell] = booking

    def available_for_day(self, day_key: str) -> List[Tuple[Cell, BookingRecord]]:
        """Todos los bookings AVAILABLE de un día, incluidos los duplicados."""
        return [(cell, booking) for cell, booking in self.available_records if cell[0] == day_key]


def classify_cell(
    day: date,
    time_value: str,
    template: OperatingTemplate,
    index: BookingIndex,
    pending: Set[Cell],
) -> CellState:
    """Prioridad: CLOSED > OCCUPIED > BLOCKED > PENDING_SELECTION > SAVED_AVAILABLE > OPEN."""
    time_value = normalize_time(time_value)
    cell = (format_day_key(day), time_value)

    if not template.is_open(get_js_day_of_week(day), time_value):
        return CellState.CLOSED
    if cell in index.occupied:
        return CellState.OCCUPIED
    if cell in index.blocked:
        return CellState.BLOCKED
    if cell in pending:
        return CellState.PENDING_SELECTION
    if cell in index.available:
        return CellState.SAVED_AVAILABLE
    return CellState.OPEN


def get_cell_booking_id(cell: Cell, state: CellState, index: BookingIndex) -> Optional[str]:
    source = {
        CellState.OCCUPIED: index.occupied,
        CellState.BLOCKED: index.blocked,
        CellState.SAVED_AVAILABLE: index.available,
    }.get(state)
    if source is None or cell not in source:
        return None
    return source[cell].id


def build_cell(day: date, time_value: str, template: OperatingTemplate, index: BookingIndex,
               pending: Set[Cell]) -> GridCell:
    time_value = normalize_time(time_value)
    day_key = format_day_key(day)
    state = classify_cell(day, time_value, template, index, pending)
    return GridCell(
        date=day_key,
        time=time_value,
        label=format_time_label(time_value),
        state=state,
        interactive=state in INTERACTIVE_STATES,
        booking_id=get_cell_booking_id((day_key, time_value), state, index),
    )


def build_grid(
    teacher_id: str,
    academy_id: str,
    days: List[date],
    template: OperatingTemplate,
    index: BookingIndex,
    pending: Set[Cell],
    timezone_name: str,
) -> AvailabilityGrid:
    summary: Counter = Counter({state: 0 for state in CellState})
    grid_days = []
    pending_conflicts = []
    for day in days:
        cells = [build_cell(day, t, template, index, pending) for t in template.times]
        summary.update(cell.state for cell in cells)
        pending_conflicts.extend(
            cell for cell in cells
            if (cell.date, cell.time) in pending and cell.state in (CellState.OCCUPIED, CellState.BLOCKED)
        )
        dow = get_js_day_of_week(day)
        grid_days.append(GridDay(
            date=format_day_key(day),
            day_of_week=dow,
            day_name=DAY_NAMES[dow],
            selectable_count=sum(1 for cell in cells if cell.state == CellState.OPEN),
            cells=cells,
        ))

    visible_keys = {format_day_key(day) for day in days}
    return AvailabilityGrid(
        teacher_id=teacher_id,
        academy_id=academy_id,
        timezone=timezone_name,
        start_date=format_day_key(days[0]),
        end_date=format_day_key(days[-1]),
        times=list(template.times),
        days=grid_days,
        summary=dict(summary),
        pending_count=sum(1 for cell in pending if cell[0] in visible_keys),
        pending_conflicts=pending_conflicts,
    )


def get_open_cells_for_date(day: date, template: OperatingTemplate, index: BookingIndex,
                            pending: Set[Cell]) -> Tuple[List[Cell], Counter]:
    """
    Celdas OPEN de una fecha (lo que agrega "seleccionar todo"), más el conteo
    de estados de ese día para explicar por qué no hay nada seleccionable.
    """
    day_key = format_day_key(day)
    states: Counter = Counter()
    selectable = []
    for time_value in template.times:
        state = classify_cell(day, time_value, template, index, pending)
        states[state] += 1
        if state == CellState.OPEN:
            selectable.append((day_key, time_value))
    return selectable, states


def get_open_cells_for_time(time_value: str, days: List[date], template: OperatingTemplate,
                            index: BookingIndex, pending: Set[Cell]) -> Tuple[List[Cell], Counter]:
    """Celdas OPEN de una misma hora en todos los días visibles."""
    time_value = normalize_time(time_value)
    states: Counter = Counter()
    selectable = []
    for day in days:
        state = classify_cell(day, time_value, template, index, pending)
        states[state] += 1
        if state == CellState.OPEN:
            selectable.append((format_day_key(day), time_value))
    return selectable, states


def find_occupied_conflicts(pending: Set[Cell], index: BookingIndex) -> List[Cell]:
    """Celdas pendientes que un alumno reservó después de que el docente las marcó."""
    return sorted(cell for cell in pending if cell in index.occupied)


def get_pending_window(pending: Set[Cell]) -> Tuple[date, int]:
    """Primer día y cantidad de días que cubren toda la selección pendiente."""
    day_keys = sorted({cell[0] for cell in pending})
    first = date.fromisoformat(day_keys[0])
    last = date.fromisoformat(day_keys[-1])
    return first, (last - first).days + 1


def get_apply_window(first_day: date, apply_mode: str) -> int:
    """
    Cantidad de días en los que se repite la selección semanal a partir del
    primer día pendiente: `week` 7 días, `month` un mes calendario, `always` un año.
    `selection` guarda solo las celdas marcadas.
    """
    if apply_mode == "week":
        return 7
    if apply_mode == "month":
        return (add_months(first_day, 1) - first_day).days
    if apply_mode == "always":
        return (add_months(first_day, 12) - first_day).days
    return 1


def expand_weekly_selection(pending: Set[Cell], days: List[date], template: OperatingTemplate,
                            index: BookingIndex) -> Tuple[Set[Cell], List[Cell]]:
    """
    Repite las horas marcadas de cada día de la semana en todos los días de la
    ventana con ese mismo día de la semana.

    Las celdas marcadas se guardan siempre. Las repetidas solo si están OPEN;
    las demás (cerradas, ocupadas, bloqueadas o ya guardadas) se devuelven
    como omitidas.
    """
    times_by_weekday: Dict[int, Set[str]] = {}
    for day_key, time_value in pending:
        times_by_weekday.setdefault(get_js_day_of_week(day_key), set()).add(time_value)

    cells = set(pending)
    omitted = []
    for day in days:
        day_key = format_day_key(day)
        for time_value in sorted(times_by_weekday.get(get_js_day_of_week(day), ())):
            cell = (day_key, time_value)
            if cell in cells:
                continue
            if classify_cell(day, time_value, template, index, pending) == CellState.OPEN:
                cells.add(cell)
            else:
                omitted.append(cell)
    return cells, omitted


def build_bulk_slots(pending: Set[Cell], tz, duration_minutes: int, notes: str) -> List[Dict[str, str]]:
    """
    Convierte cada celda pendiente (fecha y hora locales) en el par startAt/endAt
    UTC que espera el endpoint de creación en bloque.
    """
    slots = []
    for day_key, time_value in sorted(pending):
        start_at = create_utc_from_local(day_key, time_value, tz)
        end_at = start_at + timedelta(minutes=duration_minutes)
        slots.append({
            "startAt": format_utc_iso(start_at),
            "endAt": format_utc_iso(end_at),
            "professorNotes": notes,
        })
    return slots
