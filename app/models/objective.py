# app/models/objective.py
from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.core.auth import utcnow
from app.core.database import Base

class FinancialObjective(Base):
    __tablename__ = "financial_objectives"
    __table_args__ = (
        CheckConstraint("target_amount > 0", name="ck_objectives_target_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(length=150), nullable=False)
    target_amount = Column(Numeric(12, 2), nullable=False)
    # Progress so far, moved by the owner
    current_amount = Column(Numeric(12, 2), nullable=False, default=0)
    deadline = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="objectives")

    def __repr__(self):
        return f"<FinancialObjective title={self.title} target={self.target_amount} user_id={self.user_id}>"
