from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Request, status
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.core.auth import AuthContext
from app.core.config import get_settings
from app.core.deps import get_booking_service, get_credit_ledger_service, verify_admin_access
from app.db.redis_client import get_redis_client
from app.db.session import get_db
from app.middleware.rate_limit import limiter
from app.schemas.booking import Booking
from app.schemas.package import ExpiryRunResult, MemberPackage, PackageGrant
from app.services.booking import BookingService
from app.services.credit_ledger import CreditLedgerService

router = APIRouter()
settings = get_settings()


@router.post("/members/{member_id}/packages", response_model=MemberPackage, status_code=status.HTTP_201_CREATED)
async def grant_package(
    grant_in: PackageGrant,
    member_id: int = Path(..., description="ID of the member"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
    ledger: CreditLedgerService = Depends(get_credit_ledger_service),
) -> Any:
    """
    Grant Package (Admin)

    Credits a catalog package to a member once the payment has been
    approved. The new entry expires `expiry_days` after the grant.

    Raises:
        HTTPException 404: Member or active package not found.
    """
    return await ledger.grant_package(db, member_id=member_id, package_id=grant_in.package_id)


@router.post("/bookings/{booking_id}/cancel", response_model=Booking)
@limiter.limit(settings.BOOKING_RATE_LIMIT)
async def admin_cancel_booking(
    request: Request,
    booking_id: int = Path(..., description="ID of the booking"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
    booking_service: BookingService = Depends(get_booking_service),
    redis_client: Optional[Redis] = Depends(get_redis_client),
) -> Any:
    """
    Cancel Any Booking (Admin)

    Cancels a confirmed booking regardless of owner and of the cancellation
    window. The credit is refunded to the original package.
    """
    return await booking_service.cancel_booking(
        db,
        member_id=current_user.user_id,
        booking_id=booking_id,
        admin_override=True,
        redis_client=redis_client,
    )


@router.post("/packages/expire", response_model=ExpiryRunResult)
async def expire_packages(
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
    ledger: CreditLedgerService = Depends(get_credit_ledger_service),
) -> Any:
    """Run the package expiry sweep on demand (the scheduler also runs it daily)."""
    expired = await ledger.expire_packages(db)
    return ExpiryRunResult(expired_packages=expired)
