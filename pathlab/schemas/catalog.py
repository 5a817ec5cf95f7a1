from decimal import Decimal

from pydantic import Field

from pathlab.schemas.common import CamelModel


class TestDefinitionCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    shared: bool = False
