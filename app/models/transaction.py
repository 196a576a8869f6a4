# app/models/transaction.py
import enum

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.auth import utcnow
from app.core.database import Base

class TransactionType(str, enum.Enum):
    expense = "expense"
    revenue = "revenue"

class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_user_date", "user_id", "date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(
        Enum(
            TransactionType,
            name="transaction_type",
            native_enum=False,
            create_constraint=True,
            length=10,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(length=100), nullable=False)
    payment_method = Column(String(length=50), nullable=True)
    date = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="transactions")

    def __repr__(self):
        return f"<Transaction type={self.type} amount={self.amount} date={self.date} user_id={self.user_id}>"
