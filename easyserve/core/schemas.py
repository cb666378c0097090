"""
easyserve/core/schemas.py

Core Schemas

Defines core Pydantic building blocks used across the application, including:
- CamelModel: base schema exposing camelCase names on the wire.
- Money: Decimal amounts serialized as JSON numbers.
- MoneyInput: incoming amounts, capped at what a money column can hold.
- Generic message response schema.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from easyserve.database.base import MAX_MONEY


# Decimal in Python, plain number in JSON
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
MoneyInput = Annotated[Decimal, Field(le=MAX_MONEY, allow_inf_nan=False)]


class CamelModel(BaseModel):
    """
    Base schema accepting both snake_case and camelCase input and emitting camelCase.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(BaseModel):
    """
    Generic response schema for simple success or informational messages.
    """

    detail: str = Field(..., description="Response message detail")
