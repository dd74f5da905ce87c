import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from uuid import UUID
from welfare.db.base import get_db
from welfare.core.audit import write_audit_log
from welfare.core.dependencies import require_treasurer
from welfare.models.transaction import TransactionType
from welfare.models.user import User
from welfare.schemas.transaction import (
    BulkRenewalRequest, BulkRenewalResponse, FeeCollectionRequest, SuspenseAssignRequest,
    SuspenseTransferRequest, TransactionResponse, TransferRequest, TransferResponse,
    WalletFundingRequest, WalletFundingResponse,
)
from welfare.services.operations import (
    AlreadyResolvedError, InsufficientFundsError, NotFoundError, OperationError, ValidationError,
    assign_suspense_transaction, collect_bulk_renewal, collect_fee, fund_wallet, transfer_funds,
    transfer_suspense_to_member,
)
from welfare.services.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/operations", tags=["operations"])

DEFAULT_FEE_SETTINGS = {
    TransactionType.REGISTRATION: "registration_fee",
    TransactionType.RENEWAL: "renewal_fee",
    TransactionType.PENALTY: "penalty_amount",
}


def operation_http_error(e: OperationError) -> HTTPException:
    """Map an operation failure to the HTTP error shown to the user."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, AlreadyResolvedError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, (ValidationError, InsufficientFundsError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def backend_http_error(action: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}")


@router.post("/fees", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def collect_member_fee(
    request: FeeCollectionRequest,
    current_user: User = Depends(require_treasurer),
    db: Session = Depends(get_db)
):
    """Record a registration, renewal or penalty fee paid by a member."""
    amount = request.amount
    if amount is None and request.fee_type in DEFAULT_FEE_SETTINGS:
        amount = getattr(get_settings(db), DEFAULT_FEE_SETTINGS[request.fee_type])

    try:
        transaction = collect_fee(
            db,
            member_id=request.member_id,
            fee_type=request.fee_type,
            amount=amount,
            mpesa_reference=request.reference,
            description=request.description,
            operation_id=request.operation_id,
        )
    except OperationError as e:
        raise operation_http_error(e)
    except SQLAlchemyError:
        raise backend_http_error("collect fee")

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Collect fee",
        details=f"type={request.fee_type.value}, member_id={request.member_id}, amount={transaction.amount}",
    )
    return transaction


@router.post("/renewals/bulk", response_model=BulkRenewalResponse, status_code=status.HTTP_201_CREATED)
def bulk_renewal(
    request: BulkRenewalRequest,
    current_user: User = Depends(require_treasurer),
    db: Session = Depends(get_db)
):
    """Charge every member the renewal fee. Resubmit the returned operation_id to finish a failed run."""
    amount = request.amount if request.amount is not None else get_settings(db).renewal_fee
    try:
        result = collect_bulk_renewal(
            db,
            amount=amount,
            description=request.description,
            operation_id=request.operation_id,
        )
    except OperationError as e:
        raise operation_http_error(e)
    except SQLAlchemyError:
        raise backend_http_error("collect renewal fees")

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Bulk renewal",
        details=f"operation_id={result.operation_id}, amount={amount}, created={result.created}, skipped={result.skipped}",
    )
    return result


@router.post("/members/{member_id}/fund", response_model=WalletFundingResponse, status_code=status.HTTP_201_CREATED)
def fund_member_wallet(
    member_id: UUID,
    request: WalletFundingRequest,
    current_user: User = Depends(require_treasurer),
    db: Session = Depends(get_db)
):
    try:
        result = fund_wallet(
            db,
            member_id=member_id,
            amount=request.amount,
            mpesa_reference=request.reference,
            operation_id=request.operation_id,
        )
    except OperationError as e:
        raise operation_http_error(e)
    except SQLAlchemyError:
        raise backend_http_error("fund wallet")

    if not result.replayed:
        write_audit_log(
            user_name=current_user.name,
            user_role=current_user.role.value,
            action="Fund wallet",
            details=f"member_id={member_id}, amount={request.amount}",
        )
    return WalletFundingResponse(
        operation_id=result.operation_id,
        transaction=TransactionResponse.model_validate(result.transaction),
        wallet_balance=result.ledger_balance,
        column_synced=result.column_synced,
        replayed=result.replayed,
    )


def transfer_response(result) -> TransferResponse:
    return TransferResponse(
        operation_id=result.operation_id,
        debit=TransactionResponse.model_validate(result.debit),
        credit=TransactionResponse.model_validate(result.credit),
        sender_balance=result.sender_balance,
        recipient_balance=result.recipient_balance,
    )


@router.post("/members/{member_id}/transfer", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
def transfer_between_members(
    member_id: UUID,
    request: TransferRequest,
    current_user: User = Depends(require_treasurer),
    db: Session = Depends(get_db)
):
    """Move wallet funds from this member to another."""
    try:
        result = transfer_funds(
            db,
            from_member_id=member_id,
            to_member_id=request.to_member_id,
            amount=request.amount,
            reference_text=request.reference,
            operation_id=request.operation_id,
        )
    except OperationError as e:
        raise operation_http_error(e)
    except SQLAlchemyError:
        raise backend_http_error("transfer funds")

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Transfer funds",
        details=f"from={member_id}, to={request.to_member_id}, amount={request.amount}",
    )
    return transfer_response(result)


@router.post("/suspense/{suspense_id}/transfer", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def transfer_suspense(
    suspense_id: UUID,
    request: SuspenseTransferRequest,
    current_user: User = Depends(require_treasurer),
    db: Session = Depends(get_db)
):
    """Attribute an unmatched M-Pesa payment to a member."""
    try:
        transaction = transfer_suspense_to_member(db, suspense_id=suspense_id, member_id=request.member_id)
    except OperationError as e:
        raise operation_http_error(e)
    except SQLAlchemyError:
        raise backend_http_error("transfer suspense payment")

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Transfer suspense payment",
        details=f"suspense_id={suspense_id}, member_id={request.member_id}, amount={transaction.amount}",
    )
    return transaction


@router.post("/suspense/transactions/{transaction_id}/assign", response_model=TransactionResponse)
def assign_suspense(
    transaction_id: UUID,
    request: SuspenseAssignRequest,
    current_user: User = Depends(require_treasurer),
    db: Session = Depends(get_db)
):
    """Assign a transaction sitting in the heuristic suspense view to a member."""
    try:
        transaction = assign_suspense_transaction(
            db,
            transaction_id=transaction_id,
            member_id=request.member_id,
            description=request.description,
        )
    except OperationError as e:
        raise operation_http_error(e)
    except SQLAlchemyError:
        raise backend_http_error("assign transaction")

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Assign suspense transaction",
        details=f"transaction_id={transaction_id}, member_id={request.member_id}",
    )
    return transaction
