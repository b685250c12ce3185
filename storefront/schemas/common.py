"""Shared schema types."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import Field, PlainSerializer

# Amounts stay Decimal in Python and are emitted as JSON numbers.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

NonNegativeMoney = Annotated[Money, Field(ge=0)]
