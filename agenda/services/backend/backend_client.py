from typing import Any, Dict, List, Optional
from datetime import date, datetime
import logging

import httpx

from agenda.cores.time_utils import format_day_key, format_utc_iso
from agenda.schemas.availability.backend_schema import (
    BookingRecord, BulkCreateResult, CustomBlockResult, OperatingSlot,
    parse_bookings, parse_operating_slots,
)

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Error base de las llamadas al backend de la franquicia."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class BackendAuthError(BackendError):
    """El backend rechazó el token del docente."""


class BackendNotFoundError(BackendError):
    """El recurso no existe en el backend."""


class BackendConnectionError(BackendError):
    """No se pudo conectar con el backend (red o timeout)."""


class BackendRequestError(BackendError):
    """Cualquier otra respuesta de error del backend."""


class AgendaBackendClient:
    """
    Cliente HTTP del backend de la franquicia (horarios de academias,
    bookings y bloqueos del docente).

    Reenvía el token del docente tal cual; la autenticación es responsabilidad
    del backend. Las respuestas se normalizan con los esquemas de
    `backend_schema` antes de devolverlas.
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        timeout: float = 20.0,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.http = http or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "AgendaBackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def call(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self.http.request(method, path, params=params, json=json, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise BackendConnectionError(f"Timeout en {method} {path}") from exc
        except httpx.HTTPError as exc:
            raise BackendConnectionError(f"Error de conexión en {method} {path}: {exc}") from exc

        if response.is_success:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError:
                return {"_raw_body": response.text[:2000]}

        detail = response.text[:500] if response.text else None
        if response.status_code in (401, 403):
            raise BackendAuthError("Token rechazado por el backend", response.status_code, detail)
        if response.status_code == 404:
            raise BackendNotFoundError(f"No encontrado: {path}", response.status_code, detail)
        raise BackendRequestError(f"Error del backend: {response.status_code}", response.status_code, detail)

    async def list_time_slots(self, academy_id: str) -> List[OperatingSlot]:
        payload = await self.call("GET", "/api/time-slots", params={"academy_id": academy_id})
        return parse_operating_slots(payload)

    async def list_bookings(self, teacher_id: str, date_from: datetime, date_to: datetime) -> List[BookingRecord]:
        payload = await self.call(
            "GET",
            "/api/bookings",
            params={
                "teacher_id": teacher_id,
                "from": format_utc_iso(date_from),
                "to": format_utc_iso(date_to),
            },
        )
        return parse_bookings(payload)

    async def bulk_create_availability(
        self,
        teacher_id: str,
        academy_id: str,
        slots: List[Dict[str, str]],
    ) -> BulkCreateResult:
        """Un solo POST con todos los horarios; el backend omite los que ya existen."""
        payload = await self.call(
            "POST",
            "/api/bookings/availability/bulk",
            json={
                "source": "PROFESSOR",
                "professorId": teacher_id,
                "academyId": academy_id,
                "slots": slots,
            },
        )
        return BulkCreateResult.model_validate(payload or {})

    async def delete_booking(self, booking_id: str) -> None:
        await self.call("DELETE", f"/api/bookings/{booking_id}")

    async def create_custom_block(
        self,
        teacher_id: str,
        academy_id: str,
        day: date,
        hours: List[str],
        notes: str,
    ) -> CustomBlockResult:
        payload = await self.call(
            "POST",
            f"/api/teachers/{teacher_id}/blocks/custom",
            json={
                "academy_id": academy_id,
                "date": format_day_key(day),
                "hours": hours,
                "notes": notes,
            },
        )
        return CustomBlockResult.model_validate(payload or {})
