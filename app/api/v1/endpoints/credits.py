from typing import Any, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth import AuthContext
from app.core.deps import get_credit_ledger_service, verify_member_access
from app.db.session import get_db
from app.schemas.package import CreditSummary, CreditTransaction
from app.services.credit_ledger import CreditLedgerService

router = APIRouter()


@router.get("/me", response_model=CreditSummary)
async def get_my_credits(
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_member_access),
    ledger: CreditLedgerService = Depends(get_credit_ledger_service),
) -> Any:
    """
    Get Credit Balance

    Returns the member's usable credits (non-expired packages only) and the
    packages they come from, ordered by expiry date.
    """
    return await ledger.get_credit_summary(db, member_id=current_user.user_id)


@router.get("/me/transactions", response_model=List[CreditTransaction])
async def get_my_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_member_access),
    ledger: CreditLedgerService = Depends(get_credit_ledger_service),
) -> Any:
    """Credit history (purchases, bookings, refunds and expiries), newest first."""
    return await ledger.get_transactions(db, member_id=current_user.user_id, skip=skip, limit=limit)
