from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from agenda.cores.db import Base
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingSelection(Base):
    """Horario marcado por el docente en la grilla y todavía no guardado en el backend."""
    __tablename__ = "pending_selections"
    __table_args__ = (
        UniqueConstraint("teacher_id", "academy_id", "day_key", "time", name="uq_pending_selection_cell"),
    )

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(String(64), nullable=False, index=True)
    academy_id = Column(String(64), nullable=False, index=True)
    day_key = Column(String(10), nullable=False)  # YYYY-MM-DD local
    time = Column(String(8), nullable=False)      # HH:MM:SS
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<PendingSelection(teacher_id={self.teacher_id}, academy_id={self.academy_id}, day_key={self.day_key}, time={self.time})>"
