from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from gymdesk.core.database import Base


class GenderEnum(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"


class MembershipStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    EXPIRING_SOON = "expiringSoon"
    EXPIRED = "expired"

    @classmethod
    def normalize(cls, value):
        """Map a filter value to a status; ``None`` means no status filter."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            value_lower = value.strip().lower()
            if value_lower in ("", "all"):
                return None
            mapping = {
                'active': cls.ACTIVE,
                'expired': cls.EXPIRED,
                'expiringsoon': cls.EXPIRING_SOON,
                'expiring_soon': cls.EXPIRING_SOON,
                'expiring': cls.EXPIRING_SOON,
            }
            if value_lower in mapping:
                return mapping[value_lower]
        raise ValueError(f"Invalid membership status: {value}")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(20), nullable=True, unique=True, index=True)
    gender = Column(SQLEnum(GenderEnum, values_callable=lambda x: [e.value for e in x], native_enum=False), nullable=False)
    register_date = Column(DateTime, nullable=False, index=True)
    expire_date = Column(DateTime, nullable=True, index=True)
    fee = Column(Numeric(10, 2), nullable=False)
    balance = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    payments = relationship(
        "Payment",
        back_populates="customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
