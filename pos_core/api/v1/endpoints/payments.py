"""Payment endpoints nested under an outlet's order."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pos_core.core.security import Actor, get_outlet_actor
from pos_core.db.session import get_db
from pos_core.schemas.order import PaymentCreate, PaymentResponse, PaymentResult, order_snapshot
from pos_core.services import payment_service

router: APIRouter = APIRouter()


@router.post("/{order_id}/payments", response_model=PaymentResult, status_code=201)
def add_payment(
    outlet_id: int,
    order_id: int,
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> PaymentResult:
    """Record a payment; the order completes once fully paid."""
    outcome = payment_service.add_payment(db, outlet_id, order_id, payload, actor)
    return PaymentResult(
        payment=PaymentResponse.model_validate(outcome.payment),
        order=order_snapshot(outcome.order),
    )


@router.get("/{order_id}/payments", response_model=list[PaymentResponse])
def list_payments(
    outlet_id: int,
    order_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> list[PaymentResponse]:
    payments = payment_service.list_payments(db, outlet_id, order_id)
    return [PaymentResponse.model_validate(payment) for payment in payments]
