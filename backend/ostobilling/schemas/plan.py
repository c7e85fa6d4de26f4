"""Plan schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ostobilling.core.config import settings
from ostobilling.core.constants.currencies import is_supported_currency
from ostobilling.core.shared_models import PlanInterval


def _normalize_currency(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    code = v.strip().upper()
    if len(code) != 3 or not is_supported_currency(code):
        raise ValueError(f"Unsupported currency: {v}")
    return code


class PlanBase(BaseModel):
    """Plan base schema."""

    name: str = Field(..., min_length=2, max_length=100, description="Display name of the plan")
    description: str = Field(..., min_length=10, max_length=500)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: str = Field(settings.DEFAULT_CURRENCY, description="ISO 4217 currency code")
    interval: PlanInterval
    trial_days: int = Field(0, ge=0, le=365)
    features: list[str] = Field(..., min_length=1)
    is_popular: bool = False

    @field_validator("currency", mode="before")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Uppercase the currency and check it against the supported codes."""
        return _normalize_currency(v)


class PlanCreate(PlanBase):
    """Plan creation schema."""

    pass


class PlanUpdate(BaseModel):
    """Plan update schema. Only the fields that are set are applied."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=500)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = None
    interval: Optional[PlanInterval] = None
    trial_days: Optional[int] = Field(None, ge=0, le=365)
    features: Optional[list[str]] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    is_popular: Optional[bool] = None

    @field_validator("currency", mode="before")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        """Uppercase the currency and check it against the supported codes."""
        return _normalize_currency(v)


class PlanInDBBase(BaseModel):
    """Plan base schema in the database.

    ``interval`` is read back as text so a plan carrying a legacy value can
    still be listed.
    """

    model_config = {"from_attributes": True}

    id: UUID
    name: str
    slug: str
    description: Optional[str] = None
    price: Decimal
    currency: str
    interval: str
    trial_days: int
    features: list[str] = Field(default_factory=list)
    is_active: bool
    is_popular: bool
    created_at: datetime
    modified_at: datetime


class Plan(PlanInDBBase):
    """Plan schema."""

    pass
