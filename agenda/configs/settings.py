from typing import List

from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings

"""
Se carga automáticamente desde el archivo `.env` o las variables de entorno del sistema.
    - Base de datos local donde se guarda la selección pendiente del docente.
    - Conexión con el backend de la franquicia (URL y timeout).
    - Zona horaria local del docente y duración de cada horario.
    - Configuracion global
"""
class Settings(BaseSettings):
    SQLALCHEMY_DATABASE_URI: str = "sqlite+aiosqlite:///./agenda.db"

    BACKEND_API_URL: str = "http://localhost:3001"
    BACKEND_TIMEOUT_SECONDS: float = 20.0

    LOCAL_TIMEZONE: str = "America/Sao_Paulo"
    SLOT_DURATION_MINUTES: int = 60
    AVAILABILITY_NOTES: str = "Horario disponible"
    MAX_BLOCK_DAYS: int = 62

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT_DEFAULT: str = "100/minute"

    model_config = ConfigDict(env_file=".env", extra="ignore")

    @field_validator("BACKEND_API_URL", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")


settings = Settings()
