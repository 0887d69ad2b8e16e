from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import datetime

from app.models.package import TransactionType


class SessionPackage(BaseModel):
    id: int
    name: str
    session_count: int
    price: Decimal
    expiry_days: int
    is_active: bool

    model_config = {"from_attributes": True}


class PackageGrant(BaseModel):
    package_id: int = Field(..., description="Paquete del catálogo aprobado tras el pago")


class MemberPackage(BaseModel):
    id: int
    member_id: int
    package_id: int
    sessions_remaining: int
    sessions_total: int
    purchase_date: datetime
    expiry_date: datetime
    is_expired: bool

    model_config = {"from_attributes": True}


class CreditTransaction(BaseModel):
    id: int
    member_id: int
    member_package_id: Optional[int] = None
    booking_id: Optional[int] = None
    transaction_type: TransactionType
    credits_change: int
    balance_after: int
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CreditSummary(BaseModel):
    member_id: int
    available_credits: int
    active_packages: List[MemberPackage] = Field(default_factory=list)


class ExpiryRunResult(BaseModel):
    expired_packages: int
