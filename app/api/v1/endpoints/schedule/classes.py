from app.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("", response_model=List[ClassInstance])
async def list_classes(
    start: Optional[datetime] = Query(None, description="Range start (ISO 8601, defaults to now)"),
    end: Optional[datetime] = Query(None, description="Range end (ISO 8601, defaults to start + 7 days)"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user),
    class_instance_service: ClassInstanceService = Depends(get_class_instance_service),
    redis_client: Optional[Redis] = Depends(get_redis_client),
) -> Any:
    """
    List Upcoming Classes

    Returns non-cancelled class instances starting within the range, with
    their remaining spots. Results are cached briefly in Redis when
    available.
    """
    return await class_instance_service.list_classes(db, start=start, end=end, redis_client=redis_client)


@router.get("/{class_instance_id}", response_model=ClassInstance)
async def get_class(
    class_instance_id: int = Path(..., description="ID of the class instance"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user),
    class_instance_service: ClassInstanceService = Depends(get_class_instance_service),
) -> Any:
    return await class_instance_service.get_class(db, class_instance_id)


@router.post("/{class_instance_id}/cancel", response_model=ClassInstanceCancelResult)
async def cancel_class(
    class_instance_id: int = Path(..., description="ID of the class instance"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
    booking_service: BookingService = Depends(get_booking_service),
    redis_client: Optional[Redis] = Depends(get_redis_client),
) -> Any:
    """
    Cancel Class Instance (Admin)

    Cancels the whole class. Every confirmed booking is cancelled and its
    credit is returned to the package it was taken from.

    Raises:
        HTTPException 404: Class instance not found.
        HTTPException 409: Class already cancelled.
    """
    cancelled = await booking_service.cancel_class_instance(
        db, class_instance_id=class_instance_id, redis_client=redis_client
    )
    return ClassInstanceCancelResult(class_instance_id=class_instance_id, cancelled_bookings=cancelled)


generation_router = APIRouter()


@generation_router.post("", response_model=GenerationReport)
async def generate_classes(
    request_in: Optional[GenerationRequest] = Body(None),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
    generator: ScheduleGeneratorService = Depends(get_schedule_generator_service),
    redis_client: Optional[Redis] = Depends(get_redis_client),
) -> Any:
    """
    Generate Class Instances (Admin)

    Materializes class instances from the active templates for the next
    `months_ahead` months (1-12). Idempotent: existing instances are
    skipped. Per-slot failures are reported in `errors` and do not abort
    the run.
    """
    months_ahead = request_in.months_ahead if request_in else None
    return await generator.generate_instances(db, months_ahead=months_ahead, redis_client=redis_client)
