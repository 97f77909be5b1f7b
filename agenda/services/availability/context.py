from dataclasses import dataclass

import pytz

from agenda.configs.settings import settings
from agenda.cores.time_utils import get_timezone


@dataclass(frozen=True)
class AgendaContext:
    """Docente y academia de la grilla, más la configuración de horarios que usa cada operación."""
    teacher_id: str
    academy_id: str
    timezone_name: str = settings.LOCAL_TIMEZONE
    slot_duration_minutes: int = settings.SLOT_DURATION_MINUTES
    availability_notes: str = settings.AVAILABILITY_NOTES
    max_block_days: int = settings.MAX_BLOCK_DAYS

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return get_timezone(self.timezone_name)
