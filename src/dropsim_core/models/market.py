"""Per-product inputs supplied by the budget and seasonality collaborators."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BudgetAllocation(BaseModel):
    """Marketing budget assigned to one product: allocated vs. still available."""

    product_id: str = Field(alias="productId")
    allocated: float = Field(default=0.0, ge=0)
    available: float = Field(default=0.0, ge=0)

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("product_id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> str:
        return str(v)


class SeasonalityFactor(BaseModel):
    """Multiplicative demand adjustments for one product."""

    product_id: str = Field(alias="productId")
    seasonality: float = Field(default=1.0, gt=0)
    trend: float = Field(default=1.0, gt=0)

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("product_id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("seasonality", "trend", mode="before")
    @classmethod
    def _default_missing(cls, v: Any) -> Any:
        # Collaborators send null for products that have never been scored
        return 1.0 if v is None else v


def neutral_factor(product_id: str) -> SeasonalityFactor:
    return SeasonalityFactor(product_id=product_id)
