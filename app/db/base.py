# Importar todos los modelos para que Alembic los detecte
from app.db.base_class import Base  # noqa
from app.models.user import User, Child  # noqa
from app.models.schedule import Location, ClassType, ScheduleTemplate, ClassInstance  # noqa
from app.models.package import SessionPackage, MemberPackage, CreditTransaction  # noqa
from app.models.booking import Booking  # noqa
