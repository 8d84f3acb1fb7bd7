from __future__ import annotations

from fastapi import APIRouter, Depends

from app.rms.core.deps import get_payment_service, require_actor_id
from app.rms.schemas.errors import ERROR_RESPONSES
from app.rms.schemas.payments import (
    CreateRefundRequest,
    PaymentResponse,
    PaymentSummaryResponse,
    RecordPaymentRequest,
    RecordSplitPaymentRequest,
    RefundResponse,
    SplitCalculationRequest,
    SplitCalculationResponse,
    payment_response,
    payment_summary_response,
    refund_response,
    split_calculation_response,
)
from app.rms.services.payments import PaymentService

router = APIRouter(prefix="/rms/orders/{order_id}", responses=ERROR_RESPONSES)


@router.post("/payments", response_model=PaymentResponse, status_code=201)
def record_payment(
    order_id: str,
    payload: RecordPaymentRequest,
    actor_id: str = Depends(require_actor_id),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.record_payment(
        actor_id,
        order_id,
        payload.amount,
        payload.payment_method,
        amount_tendered=payload.amount_tendered,
        transaction_id=payload.transaction_id,
        notes=payload.notes,
    )
    return payment_response(payment)


@router.post("/payments/split", response_model=PaymentResponse, status_code=201)
def record_split_payment(
    order_id: str,
    payload: RecordSplitPaymentRequest,
    actor_id: str = Depends(require_actor_id),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.record_split_payment(
        actor_id,
        order_id,
        payload.amount,
        payload.payment_method,
        split_type=payload.split_type,
        guest_number=payload.guest_number,
        split_metadata=payload.split_metadata,
        amount_tendered=payload.amount_tendered,
        transaction_id=payload.transaction_id,
        notes=payload.notes,
    )
    return payment_response(payment)


@router.get("/payments", response_model=list[PaymentResponse])
def list_payments(
    order_id: str,
    actor_id: str = Depends(require_actor_id),
    service: PaymentService = Depends(get_payment_service),
):
    return [payment_response(payment) for payment in service.list_payments(actor_id, order_id)]


@router.post("/refunds", response_model=RefundResponse, status_code=201)
def create_refund(
    order_id: str,
    payload: CreateRefundRequest,
    actor_id: str = Depends(require_actor_id),
    service: PaymentService = Depends(get_payment_service),
):
    return refund_response(service.create_refund(actor_id, order_id, payload.amount, payload.reason))


@router.get("/refunds", response_model=list[RefundResponse])
def list_refunds(
    order_id: str,
    actor_id: str = Depends(require_actor_id),
    service: PaymentService = Depends(get_payment_service),
):
    return [refund_response(refund) for refund in service.list_refunds(actor_id, order_id)]


@router.get("/payment-summary", response_model=PaymentSummaryResponse)
def get_payment_summary(
    order_id: str,
    actor_id: str = Depends(require_actor_id),
    service: PaymentService = Depends(get_payment_service),
):
    return payment_summary_response(service.get_payment_summary(actor_id, order_id))


@router.post("/split-calculation", response_model=SplitCalculationResponse)
def calculate_split(
    order_id: str,
    payload: SplitCalculationRequest,
    actor_id: str = Depends(require_actor_id),
    service: PaymentService = Depends(get_payment_service),
):
    proposal = service.calculate_split(
        actor_id,
        order_id,
        payload.split_type,
        guest_count=payload.guest_count,
        item_assignments=payload.item_assignments,
        custom_amounts=payload.custom_amounts,
    )
    return split_calculation_response(proposal)
