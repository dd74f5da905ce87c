import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from welfare.db.base import get_db
from welfare.core.dependencies import require_staff
from welfare.models.user import User
from welfare.schemas.transaction import (
    AccountResponse, AccountSummaryResponse, SuspenseAccountResponse, SuspenseTransactionResponse,
    TransactionResponse,
)
from welfare.services.accounts import (
    AccountClassificationError, AccountName, get_account_transactions, get_suspense_classifier, summarize,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


def _summary_response(summary) -> AccountSummaryResponse:
    return AccountSummaryResponse(
        balance=summary.balance,
        credits=summary.credits,
        debits=summary.debits,
        count=summary.count,
    )


@router.get("/suspense", response_model=SuspenseAccountResponse)
def get_suspense_account(
    classifier: str = Query("v2", description="v1: description heuristic, v2: unresolved M-Pesa payments"),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """Suspense account under the chosen classifier."""
    try:
        suspense = get_suspense_classifier(classifier)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        rows = suspense.classify(db)
    except AccountClassificationError as e:
        logger.error("Suspense classification (%s) failed: %s", classifier, e)
        raise HTTPException(status_code=503, detail=str(e))

    schema = SuspenseTransactionResponse if suspense.version == "v2" else TransactionResponse
    return SuspenseAccountResponse(
        classifier=suspense.version,
        summary=_summary_response(suspense.summarize(rows)),
        transactions=[schema.model_validate(row).model_dump(mode="json") for row in rows],
    )


@router.get("/{account}", response_model=AccountResponse)
def get_account(
    account: AccountName,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """Registration, renewal, penalty or arrears account.

    The suspense account is served by the route above.
    """
    try:
        rows = get_account_transactions(db, account)
    except AccountClassificationError as e:
        logger.error("Account %s could not be loaded: %s", account.value, e)
        raise HTTPException(status_code=503, detail=str(e))
    return AccountResponse(
        account=account.value,
        summary=_summary_response(summarize(rows)),
        transactions=[TransactionResponse.model_validate(tx) for tx in rows],
    )
