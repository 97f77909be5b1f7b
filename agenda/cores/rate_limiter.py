from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from agenda.configs.settings import settings


def get_client_ip(request: Request) -> str:
    """
    Obtiene la IP del cliente desde el request.
    Considera proxies y headers de forwarding.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri="memory://",
    headers_enabled=False,
)

# Límite para las operaciones que escriben en el backend (guardar, bloquear, borrar)
WRITE_LIMIT = "30/minute"


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Handler para cuando se excede el límite de peticiones.
    Devuelve respuesta en formato JSON consistente con el resto de la API.
    """
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Demasiadas peticiones. Por favor, intenta más tarde.",
            "detail": f"Límite excedido: {exc.detail}",
        },
    )
