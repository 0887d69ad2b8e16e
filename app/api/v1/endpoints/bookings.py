from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.core.auth import AuthContext
from app.core.config import get_settings
from app.core.deps import get_booking_service, verify_member_access
from app.db.redis_client import get_redis_client
from app.db.session import get_db
from app.middleware.rate_limit import limiter
from app.schemas.booking import Booking, BookingCreate
from app.services.booking import BookingService

router = APIRouter()
settings = get_settings()


@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.BOOKING_RATE_LIMIT)
async def create_booking(
    request: Request,
    booking_in: BookingCreate,
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_member_access),
    booking_service: BookingService = Depends(get_booking_service),
    redis_client: Optional[Redis] = Depends(get_redis_client),
) -> Any:
    """
    Book a Class

    Books a seat in a class instance for the authenticated member, or for one
    of their children when `child_id` is given. One credit is taken from the
    member's package that expires first.

    Raises:
        HTTPException 400: CLASS_FULL, ALREADY_BOOKED, INSUFFICIENT_CREDITS or CLASS_ALREADY_STARTED.
        HTTPException 403: The child does not belong to the member.
        HTTPException 404: CLASS_NOT_FOUND (missing or cancelled class).
    """
    return await booking_service.create_booking(
        db,
        member_id=current_user.user_id,
        class_instance_id=booking_in.class_instance_id,
        child_id=booking_in.child_id,
        redis_client=redis_client,
    )


@router.delete("/{booking_id}", response_model=Booking)
@limiter.limit(settings.BOOKING_RATE_LIMIT)
async def cancel_booking(
    request: Request,
    booking_id: int = Path(..., description="ID of the booking"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_member_access),
    booking_service: BookingService = Depends(get_booking_service),
    redis_client: Optional[Redis] = Depends(get_redis_client),
) -> Any:
    """
    Cancel a Booking

    Cancels one of the member's confirmed bookings and refunds the credit to
    the package it was taken from. Not allowed within the cancellation
    window before the class starts.

    Raises:
        HTTPException 400: CANCELLATION_WINDOW_PASSED.
        HTTPException 404: Booking not found for this member.
        HTTPException 409: Booking is not confirmed.
    """
    return await booking_service.cancel_booking(
        db, member_id=current_user.user_id, booking_id=booking_id, redis_client=redis_client
    )


@router.get("/me", response_model=List[Booking])
async def list_my_bookings(
    upcoming_only: bool = Query(False, description="Only bookings for classes that have not started"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_member_access),
    booking_service: BookingService = Depends(get_booking_service),
) -> Any:
    """List the authenticated member's bookings ordered by class start time."""
    return await booking_service.list_member_bookings(
        db, member_id=current_user.user_id, upcoming_only=upcoming_only, skip=skip, limit=limit
    )
