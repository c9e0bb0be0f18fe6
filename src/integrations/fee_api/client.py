"""
Authenticated async client for the fee REST API.

One FeeApiClient carries the base URL and bearer token; everything that talks
to the fee endpoints takes a client instead of looking up credentials itself.
Responses are unwrapped from the {success, data, message} envelope and
validated into typed schemas on the way in.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from src.core.config import settings
from src.modules.fees.schemas import (
    AggregateSnapshot,
    AssignResult,
    CreatedCount,
    DueAlerts,
    FeeRecordBulkCreate,
    FeeRecordCreate,
    FeeRecordResponse,
    FeeRecordUpdate,
    FeeStructureComponentsCreate,
    FeeStructureCreate,
    FeeStructureResponse,
    FeeStructureUpdate,
)
from src.modules.payments.models import PaymentMethod
from src.modules.payments.schemas import PaymentResponse, ReceiptResponse
from src.modules.students.schemas import SchoolClassResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FeeApiError(Exception):
    """Request failed; message is the server-provided one when there is one."""

    def __init__(self, message: str, status_code: int | None = None, errors: list | None = None):
        self.message = message
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)


def _params(filters: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for key, value in filters.items():
        if value is None:
            continue
        if isinstance(value, date):
            value = value.isoformat()
        elif hasattr(value, "value"):
            value = value.value
        out[key] = value
    return out


def _body(data: BaseModel | dict) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_unset=True)
    return data


class FeeApiClient:
    """Fee API client. Use as an async context manager or call aclose()."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = token if token.lower().startswith("bearer ") else f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.fee_api_base_url).rstrip("/"),
            headers=headers,
            transport=transport,
            timeout=timeout or settings.fee_api_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "FeeApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- Transport ---

    @staticmethod
    def _raise_for_envelope(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success and isinstance(body, dict) and body.get("success"):
            return body.get("data")

        message = None
        errors = []
        if isinstance(body, dict):
            message = body.get("message") or body.get("detail")
            errors = body.get("errors") or []
        if not message:
            message = f"Request failed with status {response.status_code}"
        logger.warning(
            "Fee API %s %s failed: %s (%s)",
            response.request.method,
            response.request.url.path,
            message,
            response.status_code,
        )
        raise FeeApiError(str(message), response.status_code, errors)

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await self._client.request(method, path, **kwargs)

    @retry(
        stop=stop_after_attempt(settings.fee_api_retry_attempts),
        wait=wait_fixed(0.4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get_response(self, path: str, params: dict | None = None) -> httpx.Response:
        # Reads are idempotent, so transport failures are retried
        return await self._send("GET", path, params=params)

    async def _get(self, path: str, params: dict | None = None) -> Any:
        return self._raise_for_envelope(await self._get_response(path, params))

    async def _write(self, method: str, path: str, body: dict | None = None) -> Any:
        response = await self._send(method, path, json=body)
        return self._raise_for_envelope(response)

    async def _download(self, path: str, params: dict | None = None) -> bytes:
        response = await self._get_response(path, params)
        if response.is_success:
            return response.content
        return self._raise_for_envelope(response)

    @staticmethod
    def _parse(schema: type[T], data: Any) -> T:
        try:
            return TypeAdapter(schema).validate_python(data)
        except ValidationError as exc:
            logger.warning("Fee API returned malformed %s: %s", schema, exc)
            raise FeeApiError(f"Malformed response: {exc.error_count()} invalid field(s)") from exc

    # --- Fee structures ---

    async def create_structure(self, data: FeeStructureCreate) -> FeeStructureResponse:
        return self._parse(FeeStructureResponse, await self._write("POST", "/fees/structures", _body(data)))

    async def create_structure_components(
        self, data: FeeStructureComponentsCreate
    ) -> list[FeeStructureResponse]:
        data = await self._write("POST", "/fees/structures/components", _body(data))
        return self._parse(list[FeeStructureResponse], data)

    async def list_structures(self, **filters) -> list[FeeStructureResponse]:
        return self._parse(
            list[FeeStructureResponse], await self._get("/fees/structures", _params(filters))
        )

    async def update_structure(self, structure_id: int, data: FeeStructureUpdate) -> FeeStructureResponse:
        data = await self._write("PUT", f"/fees/structures/{structure_id}", _body(data))
        return self._parse(FeeStructureResponse, data)

    async def delete_structure(self, structure_id: int) -> None:
        await self._write("DELETE", f"/fees/structures/{structure_id}")

    async def toggle_structure(self, structure_id: int) -> FeeStructureResponse:
        data = await self._write("PATCH", f"/fees/structures/{structure_id}/toggle")
        return self._parse(FeeStructureResponse, data)

    async def assign(self, structure_id: int) -> AssignResult:
        data = await self._write("POST", "/fees/assign", {"fee_structure_id": structure_id})
        return self._parse(AssignResult, data)

    # --- Fee records ---

    async def create_fee(self, data: FeeRecordCreate) -> FeeRecordResponse:
        return self._parse(FeeRecordResponse, await self._write("POST", "/fees", _body(data)))

    async def create_bulk(self, data: FeeRecordBulkCreate) -> CreatedCount:
        return self._parse(CreatedCount, await self._write("POST", "/fees/bulk", _body(data)))

    async def list_fees(self, **filters) -> list[FeeRecordResponse]:
        return self._parse(list[FeeRecordResponse], await self._get("/fees", _params(filters)))

    async def update_fee(self, fee_id: int, data: FeeRecordUpdate) -> FeeRecordResponse:
        return self._parse(FeeRecordResponse, await self._write("PUT", f"/fees/{fee_id}", _body(data)))

    async def delete_fee(self, fee_id: int) -> None:
        await self._write("DELETE", f"/fees/{fee_id}")

    async def get_student_fees(self, student_id: int, **filters) -> list[FeeRecordResponse]:
        data = await self._get(f"/fees/student/{student_id}", _params(filters))
        return self._parse(list[FeeRecordResponse], data)

    async def get_my_fees(self, **filters) -> list[FeeRecordResponse]:
        return self._parse(list[FeeRecordResponse], await self._get("/fees/my", _params(filters)))

    async def get_my_alerts(self) -> DueAlerts:
        return self._parse(DueAlerts, await self._get("/fees/my/alerts"))

    # --- Payments ---

    async def pay(
        self,
        fee_id: int,
        amount: Decimal,
        method: PaymentMethod | str,
        transaction_ref: str | None = None,
        remarks: str | None = None,
        *,
        as_parent: bool = False,
    ) -> PaymentResponse:
        path = f"/fees/{fee_id}/parent-pay" if as_parent else f"/fees/{fee_id}/pay"
        body = {
            "amount": str(amount),
            "payment_method": PaymentMethod(method).value,
            "transaction_ref": transaction_ref,
            "remarks": remarks,
        }
        return self._parse(PaymentResponse, await self._write("POST", path, body))

    async def get_student_payments(self, student_id: int) -> list[PaymentResponse]:
        return self._parse(list[PaymentResponse], await self._get(f"/fees/payments/{student_id}"))

    async def list_payments(self, **filters) -> list[PaymentResponse]:
        return self._parse(list[PaymentResponse], await self._get("/fees/payments/all", _params(filters)))

    async def get_receipt(self, payment_id: int) -> ReceiptResponse:
        return self._parse(ReceiptResponse, await self._get(f"/fees/receipt/{payment_id}"))

    # --- Statistics and documents ---

    async def get_stats_summary(
        self, academic_year: str | None = None, class_id: int | None = None
    ) -> AggregateSnapshot:
        params = _params({"academic_year": academic_year, "class_id": class_id})
        return self._parse(AggregateSnapshot, await self._get("/fees/stats/summary", params))

    async def download_bill_pdf(self, student_id: int) -> bytes:
        return await self._download(f"/fees/student/{student_id}/bill/pdf")

    async def download_receipt_pdf(self, payment_id: int) -> bytes:
        return await self._download(f"/fees/receipt/{payment_id}/pdf")

    async def download_report_pdf(self, **filters) -> bytes:
        return await self._download("/fees/report/pdf", _params(filters))

    async def export_report(self, **filters) -> bytes:
        return await self._download("/fees/report/export", _params(filters))

    # --- Class directory ---

    async def list_classes(self) -> list[SchoolClassResponse]:
        return self._parse(list[SchoolClassResponse], await self._get("/classes"))
