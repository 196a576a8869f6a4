# app/schemas/objective.py
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

class ObjectiveCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=150)
    target_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    current_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    deadline: Optional[date] = None

class ObjectiveUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    target_amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    current_amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    deadline: Optional[date] = None

class ObjectiveRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    target_amount: float
    current_amount: float
    deadline: Optional[date] = None
    created_at: datetime
    updated_at: datetime
