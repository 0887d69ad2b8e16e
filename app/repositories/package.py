from typing import List
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import func, or_, update as sql_update
from sqlalchemy.orm import Session

from app.models.package import SessionPackage, MemberPackage, CreditTransaction
from app.repositories.base import BaseRepository


class SessionPackageRepository(BaseRepository[SessionPackage, BaseModel, BaseModel]):
    def get_active(self, db: Session) -> List[SessionPackage]:
        return db.query(SessionPackage).filter(
            SessionPackage.is_active.is_(True)
        ).order_by(SessionPackage.session_count).all()


class MemberPackageRepository(BaseRepository[MemberPackage, BaseModel, BaseModel]):
    def _eligible_query(self, db: Session, *, member_id: int, now: datetime):
        return db.query(MemberPackage).filter(
            MemberPackage.member_id == member_id,
            MemberPackage.is_expired.is_(False),
            MemberPackage.expiry_date >= now,
            MemberPackage.sessions_remaining > 0
        )

    def get_eligible(
        self, db: Session, *, member_id: int, now: datetime, min_remaining: int = 1,
        for_update: bool = False
    ) -> List[MemberPackage]:
        """
        Paquetes con créditos utilizables, del que caduca antes al que caduca
        después (desempate por id, el más antiguo primero).
        """
        query = self._eligible_query(db, member_id=member_id, now=now).filter(
            MemberPackage.sessions_remaining >= min_remaining
        ).order_by(MemberPackage.expiry_date.asc(), MemberPackage.id.asc())
        if for_update:
            query = query.with_for_update()
        return query.all()

    def sum_available(self, db: Session, *, member_id: int, now: datetime) -> int:
        total = db.query(func.coalesce(func.sum(MemberPackage.sessions_remaining), 0)).filter(
            MemberPackage.member_id == member_id,
            MemberPackage.is_expired.is_(False),
            MemberPackage.expiry_date >= now,
            MemberPackage.sessions_remaining > 0
        ).scalar()
        return int(total or 0)

    def sum_expired_remaining(self, db: Session, *, member_id: int, now: datetime) -> int:
        """Créditos que quedaron sin usar en paquetes ya caducados"""
        total = db.query(func.coalesce(func.sum(MemberPackage.sessions_remaining), 0)).filter(
            MemberPackage.member_id == member_id,
            MemberPackage.sessions_remaining > 0,
            or_(MemberPackage.is_expired.is_(True), MemberPackage.expiry_date < now)
        ).scalar()
        return int(total or 0)

    def get_active_by_member(self, db: Session, *, member_id: int, now: datetime) -> List[MemberPackage]:
        return self._eligible_query(db, member_id=member_id, now=now).order_by(
            MemberPackage.expiry_date.asc(), MemberPackage.id.asc()
        ).all()

    def get_by_member(self, db: Session, *, member_id: int) -> List[MemberPackage]:
        return db.query(MemberPackage).filter(
            MemberPackage.member_id == member_id
        ).order_by(MemberPackage.purchase_date.desc(), MemberPackage.id.desc()).all()

    def get_expired_unflagged(self, db: Session, *, now: datetime) -> List[MemberPackage]:
        return db.query(MemberPackage).filter(
            MemberPackage.is_expired.is_(False),
            MemberPackage.expiry_date < now
        ).order_by(MemberPackage.id).all()

    def decrement(self, db: Session, *, entry_id: int, n: int, now: datetime) -> bool:
        """
        Resta n créditos si la entrada sigue vigente y tiene saldo suficiente.
        Devuelve False si otra transacción la dejó sin saldo o caducó.
        """
        result = db.execute(
            sql_update(MemberPackage)
            .where(
                MemberPackage.id == entry_id,
                MemberPackage.is_expired.is_(False),
                MemberPackage.expiry_date >= now,
                MemberPackage.sessions_remaining >= n
            )
            .values(sessions_remaining=MemberPackage.sessions_remaining - n)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment(self, db: Session, *, entry_id: int, n: int) -> bool:
        """Devuelve n créditos sin superar sessions_total"""
        result = db.execute(
            sql_update(MemberPackage)
            .where(
                MemberPackage.id == entry_id,
                MemberPackage.sessions_remaining + n <= MemberPackage.sessions_total
            )
            .values(sessions_remaining=MemberPackage.sessions_remaining + n)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class CreditTransactionRepository(BaseRepository[CreditTransaction, BaseModel, BaseModel]):
    def get_by_member(
        self, db: Session, *, member_id: int, skip: int = 0, limit: int = 100
    ) -> List[CreditTransaction]:
        return db.query(CreditTransaction).filter(
            CreditTransaction.member_id == member_id
        ).order_by(
            CreditTransaction.created_at.desc(), CreditTransaction.id.desc()
        ).offset(skip).limit(limit).all()

    def get_by_booking(self, db: Session, *, booking_id: int) -> List[CreditTransaction]:
        return db.query(CreditTransaction).filter(
            CreditTransaction.booking_id == booking_id
        ).order_by(CreditTransaction.id).all()


# Instantiate repositories
session_package_repository = SessionPackageRepository(SessionPackage)
member_package_repository = MemberPackageRepository(MemberPackage)
credit_transaction_repository = CreditTransactionRepository(CreditTransaction)
