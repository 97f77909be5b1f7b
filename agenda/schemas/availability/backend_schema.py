"""
Esquemas de lo que devuelve el backend de la franquicia.

El backend mezcla camelCase y snake_case (y a veces `franchise_id` en vez de
`academy_id`), así que todo se normaliza aquí, justo después del fetch. El
resto del código trabaja solo con estos modelos.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from agenda.cores.time_utils import ensure_utc, normalize_time

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    RESERVED = "RESERVED"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    BLOCKED = "BLOCKED"
    AVAILABLE = "AVAILABLE"


def normalize_booking_status(status: Optional[str], canonical: Optional[str] = None) -> BookingStatus:
    """
    Unifica los estados del backend: DONE -> COMPLETED, CANCELLED -> CANCELED,
    CONFIRMED -> PAID. Cualquier valor desconocido se considera PENDING.
    """
    raw = str(status or canonical or "").strip().upper()
    if raw in ("DONE", "COMPLETED"):
        return BookingStatus.COMPLETED
    if raw in ("CANCELED", "CANCELLED"):
        return BookingStatus.CANCELED
    if raw in ("PAID", "CONFIRMED"):
        return BookingStatus.PAID
    if raw in BookingStatus.__members__:
        return BookingStatus[raw]
    return BookingStatus.PENDING


def _coerce_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class OperatingSlot(BaseModel):
    """Horario de funcionamiento recurrente de la academia (día de la semana + hora)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    academy_id: str = Field(validation_alias=AliasChoices("academy_id", "academyId"))
    day_of_week: int = Field(ge=0, le=6, validation_alias=AliasChoices("day_of_week", "dayOfWeek"))
    time: str
    is_available: bool = Field(default=True, validation_alias=AliasChoices("is_available", "isAvailable"))

    @field_validator("academy_id", mode="before")
    @classmethod
    def coerce_academy_id(cls, v: Any) -> Optional[str]:
        return _coerce_id(v)

    @field_validator("time", mode="before")
    @classmethod
    def normalize_slot_time(cls, v: Any) -> str:
        return normalize_time(v)


class BookingRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    academy_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("academy_id", "academyId", "franchise_id", "franchiseId"),
    )
    teacher_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("teacher_id", "teacherId", "professor_id", "professorId"),
    )
    student_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("student_id", "studentId"))
    date: datetime = Field(validation_alias=AliasChoices("date", "start_at", "startAt"))
    status: BookingStatus = BookingStatus.PENDING

    @model_validator(mode="before")
    @classmethod
    def resolve_status(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            data["status"] = normalize_booking_status(data.get("status"), data.get("status_canonical"))
        return data

    @field_validator("id", "academy_id", "teacher_id", "student_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Optional[str]:
        return _coerce_id(v)

    @field_validator("date", mode="after")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def is_canceled(self) -> bool:
        return self.status == BookingStatus.CANCELED

    @property
    def is_blocked(self) -> bool:
        return self.status == BookingStatus.BLOCKED

    @property
    def is_open_availability(self) -> bool:
        """Horario AVAILABLE declarado por el docente, sin alumno."""
        return self.status == BookingStatus.AVAILABLE and not self.student_id

    @property
    def is_occupied(self) -> bool:
        """Un alumno tiene el horario (cualquier estado activo, o AVAILABLE con alumno)."""
        if self.is_canceled or self.is_blocked:
            return False
        return not self.is_open_availability


class BulkCreateResult(BaseModel):
    created: int = 0
    skipped: int = 0


class CustomBlockResult(BaseModel):
    """El backend devuelve listas con los horarios creados y omitidos."""
    created: List[Any] = []
    skipped: List[Any] = []

    @field_validator("created", "skipped", mode="before")
    @classmethod
    def as_list(cls, v: Any) -> List[Any]:
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            return list(v)
        # algunas versiones devuelven solo el conteo
        return [None] * int(v)


def _parse_items(items: Optional[Iterable[Any]], model, label: str) -> list:
    parsed = []
    for raw in items or []:
        try:
            parsed.append(model.model_validate(raw))
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"{label} descartado por formato inválido: {raw!r} ({e})")
    return parsed


def parse_operating_slots(payload: Union[dict, list, None]) -> List[OperatingSlot]:
    items = payload.get("slots") if isinstance(payload, dict) else payload
    return _parse_items(items, OperatingSlot, "Horario de academia")


def parse_bookings(payload: Union[dict, list, None]) -> List[BookingRecord]:
    items = payload.get("bookings") if isinstance(payload, dict) else payload
    return _parse_items(items, BookingRecord, "Booking")
