from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from booking_sync.application.dto.envelope import parse_envelope, parse_record, parse_records
from booking_sync.application.exceptions import ConflictFailure, TransportFailure
from booking_sync.application.ports.authority import (
    AuthorityPort,
    AuthorityResult,
    CancellationToken,
    Command,
    CommandKind,
)
from booking_sync.core.config import settings

# (method, path template); "{id}" is filled from Command.booking_id
ROUTES: dict[CommandKind, tuple[str, str]] = {
    CommandKind.list: ("GET", "/bookings"),
    CommandKind.list_mine: ("GET", "/bookings/mybookings"),
    CommandKind.get: ("GET", "/bookings/{id}"),
    CommandKind.create: ("POST", "/bookings"),
    CommandKind.set_status: ("PUT", "/bookings/{id}/status"),
    CommandKind.archive: ("PUT", "/bookings/{id}/archive"),
    CommandKind.restore: ("PUT", "/bookings/{id}/restore"),
    CommandKind.destroy_permanent: ("DELETE", "/bookings/{id}/permanent"),
    CommandKind.save_notes: ("PUT", "/bookings/{id}/notes"),
    CommandKind.resend_confirmation: ("POST", "/bookings/{id}/resend-confirmation"),
    CommandKind.request_cancellation: ("PUT", "/bookings/{id}/cancel"),
    CommandKind.delete_own: ("DELETE", "/bookings/{id}"),
}

LIST_COMMANDS = frozenset({CommandKind.list, CommandKind.list_mine})
DELETE_COMMANDS = frozenset({CommandKind.destroy_permanent, CommandKind.delete_own})


class HttpAuthority(AuthorityPort):
    def __init__(
        self,
        base_url: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._access_token = access_token if access_token is not None else settings.API_TOKEN
        self._logger = logging.getLogger(__name__)

        if not self._base_url:
            raise ValueError("API_BASE_URL is required for the HTTP authority")

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or settings.REQUEST_TIMEOUT_SECONDS,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def set_access_token(self, access_token: str | None) -> None:
        self._access_token = access_token

    async def execute(self, command: Command, token: CancellationToken | None = None) -> AuthorityResult:
        if token is not None:
            token.raise_if_cancelled()

        method, path = self._route(command)
        headers = {"Authorization": f"Bearer {self._access_token}"} if self._access_token else {}
        body = command.payload if method in ("POST", "PUT") else None

        try:
            resp = await self._client.request(
                method,
                path,
                params=command.params or None,
                json=body,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            self._log_failure(command, "timeout", str(e))
            raise TransportFailure("timeout", raw_message=str(e)) from e
        except httpx.HTTPError as e:
            self._log_failure(command, "network", str(e))
            raise TransportFailure("network", raw_message=str(e)) from e

        if token is not None:
            token.raise_if_cancelled()

        payload = self._json(resp)
        if resp.status_code >= 400:
            message = payload.get("message") if isinstance(payload, dict) else None
            message = message or resp.text or resp.reason_phrase
            self._log_failure(command, f"http_{resp.status_code}", message, status=resp.status_code)
            if resp.status_code == 409:
                raise ConflictFailure("conflict", raw_message=message, booking_id=command.booking_id)
            raise TransportFailure(f"http_{resp.status_code}", raw_message=message, status_code=resp.status_code)

        envelope = parse_envelope(payload)
        if command.kind in LIST_COMMANDS:
            records = parse_records(envelope.data)
            self._logger.info("Bookings fetched", extra={"command": command.kind.value, "count": len(records)})
            return records
        if command.kind in DELETE_COMMANDS:
            self._logger.info("Booking deleted", extra={"command": command.kind.value, "booking_id": command.booking_id})
            return None

        record = parse_record(envelope.data)
        self._logger.info("Booking command applied", extra={"command": command.kind.value, "booking_id": record.id})
        return record

    async def aclose(self) -> None:
        await self._client.aclose()

    def _route(self, command: Command) -> tuple[str, str]:
        method, template = ROUTES[command.kind]
        if "{id}" in template:
            if not command.booking_id:
                raise ValueError(f"{command.kind.value} requires a booking id")
            template = template.replace("{id}", quote(command.booking_id, safe=""))
        return method, template

    def _json(self, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            if resp.status_code >= 400:
                return None
            raise TransportFailure("malformed_response", raw_message="Response body is not JSON") from None

    def _log_failure(self, command: Command, reason: str, message: str, status: int | None = None) -> None:
        self._logger.error(
            "Authority request failed",
            extra={
                "command": command.kind.value,
                "booking_id": command.booking_id,
                "reason": reason,
                "status": status,
                "error": message,
            },
        )
