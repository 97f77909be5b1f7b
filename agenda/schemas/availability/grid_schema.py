from datetime import date as Date
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, field_validator

from agenda.cores.time_utils import normalize_time


class CellState(str, Enum):
    """
    Estado de una celda (fecha, hora) de la grilla. El orden de la lista es la
    prioridad de clasificación: gana el primero que aplica.
    """
    CLOSED = "CLOSED"                        # la academia no abre en ese día/hora
    OCCUPIED = "OCCUPIED"                    # un alumno tiene el horario
    BLOCKED = "BLOCKED"                      # el docente lo marcó como no disponible
    PENDING_SELECTION = "PENDING_SELECTION"  # marcado y todavía no guardado
    SAVED_AVAILABLE = "SAVED_AVAILABLE"      # booking AVAILABLE ya guardado
    OPEN = "OPEN"                            # libre para seleccionar


class GridCell(BaseModel):
    date: str   # YYYY-MM-DD local
    time: str   # HH:MM:SS
    label: str  # HH:MM
    state: CellState
    interactive: bool
    booking_id: Optional[str] = None


class GridDay(BaseModel):
    date: str
    day_of_week: int
    day_name: str
    selectable_count: int
    cells: List[GridCell]


class AvailabilityGrid(BaseModel):
    teacher_id: str
    academy_id: str
    timezone: str
    start_date: str
    end_date: str
    times: List[str]
    days: List[GridDay]
    summary: Dict[CellState, int]
    pending_count: int
    # celdas pendientes tapadas por una reserva o un bloqueo posterior
    pending_conflicts: List[GridCell] = []


class CellRequest(BaseModel):
    date: Date
    time: str
    start_date: Optional[Date] = None

    @field_validator("time", mode="before")
    @classmethod
    def normalize_cell_time(cls, v) -> str:
        return normalize_time(v)


class DateRequest(BaseModel):
    date: Date


class TimeAcrossDaysRequest(BaseModel):
    time: str
    start_date: Optional[Date] = None

    @field_validator("time", mode="before")
    @classmethod
    def normalize_request_time(cls, v) -> str:
        return normalize_time(v)


class ClearDateRequest(BaseModel):
    date: Date
    confirm: bool = False


class RemoveSlotRequest(CellRequest):
    """
    Elimina horarios AVAILABLE guardados.
    - single: solo la celda indicada
    - week: la misma hora en todos los días visibles desde `start_date`
    - all_day: todas las ocurrencias futuras de ese día de la semana a esa hora
    """
    mode: Literal["single", "week", "all_day"] = "single"
    confirm: bool = False


class RemoveBlockRequest(CellRequest):
    confirm: bool = False


class SaveRequest(BaseModel):
    """
    `apply_mode` repite la selección semanal: `selection` solo las celdas
    marcadas, `week` 7 días, `month` un mes y `always` un año.
    """
    start_date: Optional[Date] = None
    notes: Optional[str] = None
    apply_mode: Literal["selection", "week", "month", "always"] = "selection"


class BlockPeriodRequest(BaseModel):
    start_date: Optional[Date] = None
    end_date: Optional[Date] = None
    notes: Optional[str] = None


class SelectionChange(BaseModel):
    added: List[GridCell] = []
    removed: List[GridCell] = []
    pending_count: int


class DeleteTarget(BaseModel):
    booking_id: str
    date: str
    time: str


class DeleteReport(BaseModel):
    confirmed: bool
    requested: int
    succeeded: int = 0
    failed: int = 0
    targets: List[DeleteTarget] = []
    failed_ids: List[str] = []


class SaveReport(BaseModel):
    requested: int
    created: int
    skipped: int
    apply_mode: str = "selection"
    omitted: int = 0
    grid: Optional[AvailabilityGrid] = None


class BlockReport(BaseModel):
    days: int
    hours_per_day: int
    created: int = 0
    skipped: int = 0
    failed_days: List[str] = []
