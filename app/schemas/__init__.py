from app.schemas.schedule import (
    ScheduleTemplate,
    ScheduleTemplateCreate,
    ScheduleTemplateUpdate,
    ClassInstance,
    ClassInstanceCancelResult,
    GenerationRequest,
    GenerationReport
)
from app.schemas.package import (
    SessionPackage,
    PackageGrant,
    MemberPackage,
    CreditTransaction,
    CreditSummary,
    ExpiryRunResult
)
from app.schemas.booking import Booking, BookingCreate, AttendanceUpdate, RosterEntry
