from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from gymdesk.core.database import Base


class Payment(Base):
    """A recorded payment. Rows are never updated; ``balance`` is a snapshot."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    paid_amount = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    balance = Column(Numeric(10, 2), nullable=False, default=0)
    date = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    customer = relationship("Customer", back_populates="payments")
    user = relationship("User", back_populates="payments")
