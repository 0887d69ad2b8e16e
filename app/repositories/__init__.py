# Inicializador del paquete repositories
from app.repositories.base import BaseRepository
from app.repositories.user import user_repository, child_repository
from app.repositories.schedule import schedule_template_repository, class_instance_repository
from app.repositories.package import (
    session_package_repository,
    member_package_repository,
    credit_transaction_repository
)
from app.repositories.booking import booking_repository
