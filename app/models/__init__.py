from app.models.user import User, UserRole, Child
from app.models.schedule import DayOfWeek, Location, ClassType, ScheduleTemplate, ClassInstance
from app.models.package import SessionPackage, MemberPackage, CreditTransaction, TransactionType
from app.models.booking import Booking, BookingStatus, SELF_BENEFICIARY
