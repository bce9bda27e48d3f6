from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from shared.utils.payment_gateway import PaymentGateway, get_payment_gateway
from ..enum.contracts_enum import ObligationType
from ..schemas.payments_schemas import (
    ConfirmPaymentRequest, LandlordPaymentStats, ManualPaymentRequest, PaymentListResponse, PaymentRequest
)
from ..crud import payments_crud as crud

router = APIRouter(
    prefix="/api/payments",
    tags=["payments"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/tenant", response_model=PaymentListResponse)
def get_tenant_payments(
    params: PaymentRequest = Depends(),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.get_tenant_payments(db, current_user, params)


@router.get("/landlord", response_model=PaymentListResponse)
def get_landlord_payments(
    params: PaymentRequest = Depends(),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.get_landlord_payments(db, current_user, params)


@router.get("/landlord/stats", response_model=LandlordPaymentStats)
def get_landlord_stats(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.get_landlord_stats(db, current_user)


@router.post("/contracts/{contract_id}/deposit-intent", response_model=None)
def create_deposit_intent(
    contract_id: UUID,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: UserToken = Depends(validate_current_token)
):
    intent = crud.create_payment_intent(
        db, gateway, contract_id, ObligationType.deposit, current_user)
    return success_response(data=intent, message="Payment intent created",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/contracts/{contract_id}/rent-intent", response_model=None)
def create_first_month_rent_intent(
    contract_id: UUID,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    current_user: UserToken = Depends(validate_current_token)
):
    intent = crud.create_payment_intent(
        db, gateway, contract_id, ObligationType.first_month_rent, current_user)
    return success_response(data=intent, message="Payment intent created",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/contracts/{contract_id}/confirm", response_model=None)
def confirm_payment(
    contract_id: UUID,
    payload: ConfirmPaymentRequest,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    payment = crud.confirm_payment(db, contract_id, payload.processor_reference, current_user)
    return success_response(data=payment, message="Payment confirmed",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/contracts/{contract_id}/pay-deposit", response_model=None)
def pay_deposit(
    contract_id: UUID,
    payload: ManualPaymentRequest,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    result = crud.pay_manually(db, contract_id, ObligationType.deposit,
                               payload.method, payload.reference, current_user)
    return success_response(data=result, message=result["message"],
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/contracts/{contract_id}/pay-first-month-rent", response_model=None)
def pay_first_month_rent(
    contract_id: UUID,
    payload: ManualPaymentRequest,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    result = crud.pay_manually(db, contract_id, ObligationType.first_month_rent,
                               payload.method, payload.reference, current_user)
    return success_response(data=result, message=result["message"],
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.post("/{payment_id}/refund", response_model=None)
def refund_payment(
    payment_id: UUID,
    db: Session = Depends(get_db),
    _: UserToken = Depends(allow_admin)
):
    payment = crud.refund_payment(db, payment_id)
    return success_response(data=payment, message="Payment refunded",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)
