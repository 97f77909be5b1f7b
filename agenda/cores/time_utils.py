"""
Utilidades para conversiones de fecha y hora entre el horario local del docente
y UTC (formato del backend).

El backend guarda todo en UTC, pero la grilla se agrupa por el día calendario
local del docente (DayKey `YYYY-MM-DD`), así un horario de las 22:00 no se
muestra en el día siguiente.
"""

import calendar
import re
from datetime import date, datetime, time as dt_time, timedelta, timezone
from typing import List, Tuple, Union

import pytz

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{1,2}))?(?::(\d{1,2}))?(?:\.\d+)?\s*$")

DateLike = Union[date, str]


def normalize_time(value: Union[str, dt_time]) -> str:
    """
    Normaliza una hora a `HH:MM:SS`.

    El backend devuelve `HH:MM` o `HH:MM:SS` sin consistencia, y comparar las
    cadenas tal cual hace que `09:00` y `09:00:00` no coincidan.

    Example:
        >>> normalize_time("9:00")
        '09:00:00'
        >>> normalize_time("09:00:00")
        '09:00:00'
    """
    if isinstance(value, dt_time):
        return value.strftime("%H:%M:%S")

    match = _TIME_PATTERN.match(str(value or ""))
    if not match:
        raise ValueError(f"Hora inválida: {value!r}")

    hour, minute, second = (int(part) if part else 0 for part in match.groups())
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f"Hora fuera de rango: {value!r}")

    return f"{hour:02d}:{minute:02d}:{second:02d}"


def format_time_label(value: str) -> str:
    """`HH:MM:SS` -> `HH:MM` (etiqueta para mostrar y para el endpoint de bloqueos)."""
    return normalize_time(value)[:5]


def get_timezone(name: str) -> pytz.BaseTzInfo:
    return pytz.timezone(name)


def parse_day_key(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Fecha inválida (se espera YYYY-MM-DD): {value!r}")


def format_day_key(value: DateLike) -> str:
    return parse_day_key(value).strftime("%Y-%m-%d")


def ensure_utc(value: datetime) -> datetime:
    """Las fechas sin zona horaria se interpretan como UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_local_datetime(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    return ensure_utc(value).astimezone(tz)


def get_day_key(value: datetime, tz: pytz.BaseTzInfo) -> str:
    """Día calendario local (`YYYY-MM-DD`) de un timestamp UTC."""
    return get_local_datetime(value, tz).strftime("%Y-%m-%d")


def get_local_time(value: datetime, tz: pytz.BaseTzInfo) -> str:
    """Hora local (`HH:MM:SS`) de un timestamp UTC."""
    return get_local_datetime(value, tz).strftime("%H:%M:%S")


def get_js_day_of_week(value: DateLike) -> int:
    """Día de la semana con domingo = 0, igual que en `academy_time_slots`."""
    return (parse_day_key(value).weekday() + 1) % 7


def create_utc_from_local(day: DateLike, time_value: str, tz: pytz.BaseTzInfo) -> datetime:
    """
    Convierte fecha + hora local del docente a un datetime UTC.
    Se usa el día calendario local, no el del servidor, para no mover el
    horario de día cerca de la medianoche.
    """
    hour, minute, second = (int(part) for part in normalize_time(time_value).split(":"))
    naive = datetime.combine(parse_day_key(day), dt_time(hour, minute, second))
    local = tz.normalize(tz.localize(naive))
    return local.astimezone(timezone.utc)


def format_utc_iso(value: datetime) -> str:
    """Formato ISO-8601 UTC con milisegundos y sufijo `Z`, como espera el backend."""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def get_local_today(tz: pytz.BaseTzInfo) -> date:
    return datetime.now(timezone.utc).astimezone(tz).date()


def get_week_dates(start: DateLike, days: int = 7) -> List[date]:
    first = parse_day_key(start)
    return [first + timedelta(days=offset) for offset in range(days)]


def get_date_range(start: DateLike, end: DateLike) -> List[date]:
    first, last = parse_day_key(start), parse_day_key(end)
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def get_window_bounds_utc(start: DateLike, days: int, tz: pytz.BaseTzInfo) -> Tuple[datetime, datetime]:
    """Medianoche local del primer día hasta la medianoche local después del último, en UTC."""
    first = parse_day_key(start)
    window_start = create_utc_from_local(first, "00:00:00", tz)
    window_end = create_utc_from_local(first + timedelta(days=days), "00:00:00", tz)
    return window_start, window_end


def add_months(value: DateLike, months: int) -> date:
    """Suma meses calendario; si el día no existe en el mes destino se usa el último (31/01 + 1 -> 28/02)."""
    day = parse_day_key(value)
    month_index = day.month - 1 + months
    year, month = day.year + month_index // 12, month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))
