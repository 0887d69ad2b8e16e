"""
Ledger de créditos de sesión.

Cada paquete comprado (MemberPackage) es una entrada del ledger con un saldo
``sessions_remaining`` acotado entre 0 y ``sessions_total``. Todos los
movimientos quedan registrados en CreditTransaction.

``debit`` y ``credit`` no hacen commit: participan en la transacción del
llamador (el motor de reservas) para que reserva y movimiento de créditos se
confirmen o se deshagan juntos.
"""
import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.exceptions import (
    InsufficientCreditsError,
    InvalidCreditOperationError,
    NotFoundError,
)
from app.db.transactions import retry_on_db_error
from app.models.package import CreditTransaction, MemberPackage, TransactionType
from app.repositories.package import (
    credit_transaction_repository,
    member_package_repository,
    session_package_repository,
)
from app.repositories.user import user_repository
from app.schemas.package import CreditSummary, MemberPackage as MemberPackageSchema

logger = logging.getLogger(__name__)


class CreditLedgerService:
    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    def _log_transaction(
        self,
        db: Session,
        *,
        entry: MemberPackage,
        transaction_type: TransactionType,
        credits_change: int,
        balance_after: int,
        booking_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> CreditTransaction:
        return credit_transaction_repository.create(
            db,
            obj_in={
                "member_id": entry.member_id,
                "member_package_id": entry.id,
                "booking_id": booking_id,
                "transaction_type": transaction_type,
                "credits_change": credits_change,
                "balance_after": balance_after,
                "notes": notes,
                "created_at": self.clock.now(),
            },
            commit=False,
        )

    @retry_on_db_error()
    async def grant_package(self, db: Session, member_id: int, package_id: int) -> MemberPackage:
        """
        Crea la entrada del ledger tras aprobar un pago y registra la compra.

        Raises:
            NotFoundError: Si el miembro o el paquete no existen, o el paquete no está activo
        """
        member = user_repository.get(db, id=member_id)
        if not member:
            raise NotFoundError("Miembro no encontrado", details={"member_id": member_id})

        package = session_package_repository.get(db, id=package_id)
        if not package or not package.is_active:
            raise NotFoundError("Paquete no encontrado o inactivo", details={"package_id": package_id})

        now = self.clock.now()
        entry = member_package_repository.create(
            db,
            obj_in={
                "member_id": member_id,
                "package_id": package.id,
                "sessions_remaining": package.session_count,
                "sessions_total": package.session_count,
                "purchase_date": now,
                "expiry_date": now + timedelta(days=package.expiry_days),
                "is_expired": False,
            },
            commit=False,
        )
        self._log_transaction(
            db,
            entry=entry,
            transaction_type=TransactionType.PURCHASE,
            credits_change=package.session_count,
            balance_after=package.session_count,
            notes=f"Compra de paquete: {package.name}",
        )
        db.commit()
        db.refresh(entry)

        logger.info(
            f"Paquete {package.id} ({package.session_count} sesiones) otorgado al miembro {member_id}, "
            f"entrada {entry.id}, caduca {entry.expiry_date.isoformat()}"
        )
        return entry

    async def available_credits(self, db: Session, member_id: int) -> int:
        """Suma de créditos en entradas vigentes y con saldo"""
        return member_package_repository.sum_available(db, member_id=member_id, now=self.clock.now())

    async def debit(
        self,
        db: Session,
        member_id: int,
        n: int = 1,
        booking_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> CreditTransaction:
        """
        Descuenta n créditos de la entrada que caduca antes (desempate por id).

        Returns:
            La transacción registrada; su member_package_id identifica la entrada debitada

        Raises:
            InsufficientCreditsError: Si ninguna entrada vigente cubre n créditos
        """
        if n <= 0:
            raise InvalidCreditOperationError("La cantidad a debitar debe ser positiva", details={"n": n})

        now = self.clock.now()
        candidates = member_package_repository.get_eligible(
            db, member_id=member_id, now=now, min_remaining=n, for_update=True
        )
        for entry in candidates:
            if member_package_repository.decrement(db, entry_id=entry.id, n=n, now=now):
                db.refresh(entry)
                transaction = self._log_transaction(
                    db,
                    entry=entry,
                    transaction_type=TransactionType.BOOKING,
                    credits_change=-n,
                    balance_after=entry.sessions_remaining,
                    booking_id=booking_id,
                    notes=notes,
                )
                logger.info(
                    f"Debitados {n} créditos de la entrada {entry.id} del miembro {member_id} "
                    f"(saldo {entry.sessions_remaining})"
                )
                return transaction
            logger.debug(f"Entrada {entry.id} sin saldo tras bloqueo, probando la siguiente")

        available = member_package_repository.sum_available(db, member_id=member_id, now=now)
        expired = member_package_repository.sum_expired_remaining(db, member_id=member_id, now=now)
        message = "No tienes créditos disponibles"
        if available == 0 and expired > 0:
            message = "Tus créditos han caducado. Compra un nuevo paquete para reservar"
        logger.info(f"Créditos insuficientes para el miembro {member_id}: requeridos {n}, disponibles {available}")
        raise InsufficientCreditsError(
            message,
            details={"required": n, "available": available, "expired_credits": expired},
        )

    async def credit(
        self,
        db: Session,
        member_id: int,
        member_package_id: int,
        n: int = 1,
        booking_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> CreditTransaction:
        """
        Devuelve n créditos a la misma entrada que se debitó. Nunca supera
        el total original de la entrada.

        Raises:
            NotFoundError: Si la entrada no existe o no pertenece al miembro
            InvalidCreditOperationError: Si la devolución superaría el total
        """
        if n <= 0:
            raise InvalidCreditOperationError("La cantidad a devolver debe ser positiva", details={"n": n})

        entry = member_package_repository.get(db, id=member_package_id)
        if not entry or entry.member_id != member_id:
            raise NotFoundError(
                "Entrada de créditos no encontrada",
                details={"member_package_id": member_package_id},
            )

        if not member_package_repository.increment(db, entry_id=entry.id, n=n):
            db.refresh(entry)
            raise InvalidCreditOperationError(
                "La devolución superaría el total de sesiones del paquete",
                details={
                    "member_package_id": entry.id,
                    "sessions_remaining": entry.sessions_remaining,
                    "sessions_total": entry.sessions_total,
                },
            )

        db.refresh(entry)
        transaction = self._log_transaction(
            db,
            entry=entry,
            transaction_type=TransactionType.REFUND,
            credits_change=n,
            balance_after=entry.sessions_remaining,
            booking_id=booking_id,
            notes=notes,
        )
        logger.info(
            f"Devueltos {n} créditos a la entrada {entry.id} del miembro {member_id} "
            f"(saldo {entry.sessions_remaining})"
        )
        return transaction

    @retry_on_db_error()
    async def expire_packages(self, db: Session) -> int:
        """
        Marca como caducadas las entradas vencidas y deja constancia de los
        créditos perdidos. El saldo de la entrada no se modifica.

        Returns:
            Número de entradas marcadas
        """
        now = self.clock.now()
        expired_entries = member_package_repository.get_expired_unflagged(db, now=now)
        for entry in expired_entries:
            entry.is_expired = True
            if entry.sessions_remaining > 0:
                self._log_transaction(
                    db,
                    entry=entry,
                    transaction_type=TransactionType.EXPIRY,
                    credits_change=-entry.sessions_remaining,
                    balance_after=0,
                    notes=f"Caducaron {entry.sessions_remaining} créditos sin usar",
                )
        db.commit()

        if expired_entries:
            logger.info(f"Marcadas {len(expired_entries)} entradas de créditos como caducadas")
        return len(expired_entries)

    async def get_credit_summary(self, db: Session, member_id: int) -> CreditSummary:
        now = self.clock.now()
        active = member_package_repository.get_active_by_member(db, member_id=member_id, now=now)
        return CreditSummary(
            member_id=member_id,
            available_credits=sum(entry.sessions_remaining for entry in active),
            active_packages=[MemberPackageSchema.model_validate(entry) for entry in active],
        )

    async def get_transactions(
        self, db: Session, member_id: int, skip: int = 0, limit: int = 100
    ) -> List[CreditTransaction]:
        return credit_transaction_repository.get_by_member(db, member_id=member_id, skip=skip, limit=limit)


credit_ledger_service = CreditLedgerService()
