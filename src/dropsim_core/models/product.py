from __future__ import annotations

from typing import Any, Dict

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from money import Money


def coerce_money(v: Any) -> Any:
    """
    Normalize various inputs to Money:
    - Money instance: passthrough
    - dict with 'amount' (dollars) + optional 'currency'
    - numeric/string: interpreted as dollars
    """
    if isinstance(v, Money):
        return v
    if isinstance(v, dict):
        if "amount" in v:
            return Money.from_dollars(v["amount"], v.get("currency", "USD"))
        return Money.zero(v.get("currency", "USD"))
    if isinstance(v, (int, float, str)):
        return Money.from_dollars(v)
    # Unknown type: let pydantic raise a validation error downstream
    return v


class Product(BaseModel):
    """
    Catalog product as seen by the simulation engine. Read-only to the engine.

    Accepts the camelCase payloads served by the dashboard API
    (``sellingPrice`` or the catalog listing's ``potentialPrice``) as well as
    snake_case keyword arguments.
    """

    id: str
    name: str = ""
    category: str = Field(default="general")
    cost: Money
    selling_price: Money = Field(
        validation_alias=AliasChoices("sellingPrice", "potentialPrice", "selling_price")
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> str:
        # Database ids arrive as integers
        return str(v)

    @field_validator("cost", "selling_price", mode="before")
    @classmethod
    def _ensure_money(cls, v: Any) -> Any:
        return coerce_money(v)

    @field_validator("cost", "selling_price")
    @classmethod
    def _non_negative(cls, v: Money) -> Money:
        if v.is_negative():
            raise ValueError("monetary catalog fields must be >= 0")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, v: Any) -> str:
        return str(v or "general")
