# app/models/user.py
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.core.auth import utcnow
from app.core.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(length=100), nullable=False)
    firstname = Column(String(length=100), nullable=False)
    # Always stored lower-cased
    email = Column(String(length=255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(length=255), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Rows are removed by the database (ON DELETE CASCADE)
    transactions = relationship(
        "Transaction",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    objectives = relationship(
        "FinancialObjective",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"
