from app.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("", response_model=List[ScheduleTemplate])
async def list_templates(
    active_only: bool = Query(False, description="Only return active templates"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
) -> Any:
    """
    List Schedule Templates

    Returns every weekly template, including overrides, ordered by id.
    Requires the admin role.
    """
    return await schedule_template_service.list_templates(db, active_only=active_only)


@router.post("", response_model=ScheduleTemplate, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_in: ScheduleTemplateCreate,
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
) -> Any:
    """
    Create Schedule Template

    Creates a recurring weekly slot (or a date-bounded override when
    `is_override` is true). The coach must have the coach role and the
    location must be active. When `duration_minutes` is omitted the class
    type's duration is used.

    Raises:
        HTTPException 400: Invalid coach or override range.
        HTTPException 404: Location or class type not found.
    """
    return await schedule_template_service.create_template(db, template_in)


@router.get("/{template_id}", response_model=ScheduleTemplate)
async def get_template(
    template_id: int = Path(..., description="ID of the template"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
) -> Any:
    return await schedule_template_service.get_template(db, template_id)


@router.patch("/{template_id}", response_model=ScheduleTemplate)
async def update_template(
    template_id: int = Path(..., description="ID of the template"),
    template_in: ScheduleTemplateUpdate = Body(...),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
) -> Any:
    """
    Update Schedule Template

    Changes apply to future generations only; instances already generated
    keep the values they were created with.
    """
    return await schedule_template_service.update_template(db, template_id, template_in)


@router.post("/{template_id}/deactivate", response_model=ScheduleTemplate)
async def deactivate_template(
    template_id: int = Path(..., description="ID of the template"),
    db: Session = Depends(get_db),
    current_user: AuthContext = Depends(verify_admin_access),
) -> Any:
    """
    Deactivate Schedule Template

    Templates are never deleted. A deactivated template stops producing new
    instances; existing instances and their bookings are untouched.
    """
    return await schedule_template_service.deactivate_template(db, template_id)
