"""Client-side payment submission with local checks and a per-fee submit lock."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

import httpx

from src.integrations.fee_api.client import FeeApiClient, FeeApiError
from src.modules.fees.schemas import FeeRecordResponse
from src.modules.payments.models import PaymentMethod
from src.modules.payments.schemas import PaymentResponse
from src.shared.utils.money import ZERO, round_money

logger = logging.getLogger(__name__)


class PaymentValidationError(Exception):
    """Payment rejected before any request was sent."""


class PaymentInFlightError(Exception):
    """A payment for this fee record is already being submitted."""

    def __init__(self, fee_record_id: int):
        self.fee_record_id = fee_record_id
        super().__init__(f"Payment for fee record {fee_record_id} is already in progress")


@dataclass
class SubmitResult:
    payment: PaymentResponse
    fees: list[FeeRecordResponse] = field(default_factory=list)
    # Set when the payment went through but the fee records could not be re-read
    refresh_error: str | None = None

    @property
    def stale(self) -> bool:
        return self.refresh_error is not None

    @property
    def fee(self) -> FeeRecordResponse | None:
        """Fresh server state of the paid record."""
        for record in self.fees:
            if record.id == self.payment.fee_record_id:
                return record
        return None


def validate_amount(fee: FeeRecordResponse, amount: Decimal) -> Decimal:
    amount = round_money(amount)
    if amount <= ZERO:
        raise PaymentValidationError("Amount must be greater than zero")
    if fee.payment_status == "paid" or fee.balance_due <= ZERO:
        raise PaymentValidationError("This fee is already fully paid")
    if amount > fee.balance_due:
        raise PaymentValidationError(
            f"Amount {amount} exceeds the balance due of {fee.balance_due}"
        )
    return amount


class PaymentSubmitter:
    """
    Submits payments for the fee records shown to a user.

    While a payment for a record is in flight a second submit for the same
    record raises PaymentInFlightError instead of sending another request.
    After a successful payment the student's fee records are re-read from the
    server; the local copy is never patched. A failed re-read does not turn
    a recorded payment into an error: the result comes back with
    refresh_error set and no fee records.
    """

    def __init__(self, client: FeeApiClient, *, as_parent: bool = False):
        self.client = client
        self.as_parent = as_parent
        self._in_flight: set[int] = set()

    def is_submitting(self, fee_record_id: int) -> bool:
        return fee_record_id in self._in_flight

    async def submit(
        self,
        fee: FeeRecordResponse,
        amount: Decimal,
        method: PaymentMethod | str,
        transaction_ref: str | None = None,
        remarks: str | None = None,
    ) -> SubmitResult:
        amount = validate_amount(fee, amount)
        if fee.id in self._in_flight:
            raise PaymentInFlightError(fee.id)

        self._in_flight.add(fee.id)
        try:
            payment = await self.client.pay(
                fee.id,
                amount,
                method,
                transaction_ref,
                remarks,
                as_parent=self.as_parent,
            )
        finally:
            self._in_flight.discard(fee.id)

        logger.info("Payment %s submitted for fee record %s", payment.receipt_number, fee.id)
        try:
            fees = await self.client.get_student_fees(fee.student_id)
        except (FeeApiError, httpx.HTTPError) as exc:
            logger.warning(
                "Payment %s recorded but fee records of student %s could not be reloaded: %s",
                payment.receipt_number,
                fee.student_id,
                exc,
            )
            return SubmitResult(payment=payment, refresh_error=str(exc) or exc.__class__.__name__)
        return SubmitResult(payment=payment, fees=fees)
