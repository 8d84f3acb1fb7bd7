from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.rms.core.enums import PaymentMethod, SplitType
from app.rms.schemas.orders import PaymentStatusResponse, payment_status_response
from app.rms.services.pricing import money


class RecordPaymentRequest(BaseModel):
    amount: Decimal
    payment_method: PaymentMethod
    amount_tendered: Decimal | None = None
    transaction_id: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class RecordSplitPaymentRequest(RecordPaymentRequest):
    split_type: SplitType
    guest_number: int = Field(ge=1)
    split_metadata: dict | None = None


class CreateRefundRequest(BaseModel):
    amount: Decimal
    reason: str | None = None


class SplitCalculationRequest(BaseModel):
    split_type: SplitType
    guest_count: int | None = None
    item_assignments: dict[str, list[str]] | None = None
    custom_amounts: list[Decimal] | None = None


class PaymentResponse(BaseModel):
    id: str
    order_id: str
    amount: Decimal
    payment_method: PaymentMethod
    amount_tendered: Decimal | None
    change: Decimal | None
    transaction_id: str | None
    notes: str | None
    split_type: SplitType | None
    split_metadata: dict | None
    guest_number: int | None
    recorded_by: str | None
    created_at: datetime


class RefundResponse(BaseModel):
    id: str
    order_id: str
    amount: Decimal
    reason: str | None
    refunded_by: str | None
    created_at: datetime


class PaymentSummaryResponse(BaseModel):
    order_id: str
    status: PaymentStatusResponse
    payments: list[PaymentResponse]
    refunds: list[RefundResponse]


class SplitShareResponse(BaseModel):
    guest_number: int
    amount: Decimal


class SplitCalculationResponse(BaseModel):
    split_type: SplitType
    splits: list[SplitShareResponse]
    total: Decimal
    remaining: Decimal
    already_paid: Decimal
    grand_total: Decimal


def payment_response(payment) -> PaymentResponse:
    return PaymentResponse(
        id=str(payment.id),
        order_id=str(payment.order_id),
        amount=money(payment.amount),
        payment_method=payment.payment_method,
        amount_tendered=money(payment.amount_tendered) if payment.amount_tendered is not None else None,
        change=money(payment.change) if payment.change is not None else None,
        transaction_id=payment.transaction_id,
        notes=payment.notes,
        split_type=payment.split_type,
        split_metadata=payment.split_metadata,
        guest_number=payment.guest_number,
        recorded_by=str(payment.recorded_by) if payment.recorded_by else None,
        created_at=payment.created_at,
    )


def refund_response(refund) -> RefundResponse:
    return RefundResponse(
        id=str(refund.id),
        order_id=str(refund.order_id),
        amount=money(refund.amount),
        reason=refund.reason,
        refunded_by=str(refund.refunded_by) if refund.refunded_by else None,
        created_at=refund.created_at,
    )


def payment_summary_response(summary) -> PaymentSummaryResponse:
    return PaymentSummaryResponse(
        order_id=summary.order_id,
        status=payment_status_response(summary.status),
        payments=[payment_response(payment) for payment in summary.payments],
        refunds=[refund_response(refund) for refund in summary.refunds],
    )


def split_calculation_response(proposal) -> SplitCalculationResponse:
    return SplitCalculationResponse(
        split_type=proposal.split_type,
        splits=[SplitShareResponse(guest_number=share.guest_number, amount=money(share.amount)) for share in proposal.shares],
        total=money(proposal.total),
        remaining=money(proposal.remaining),
        already_paid=money(proposal.already_paid),
        grand_total=money(proposal.grand_total),
    )
