"""
Boundary input models.

Pydantic models for validating raw form submissions before any domain object is
built. Fields accept both snake_case names and the camelCase names used by the
forms (purchasePrice, paymentMethod, ...). Blank strings count as missing.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from domain.errors import ValidationError
from domain.product import Category
from domain.sale import PaymentMethod

M = TypeVar("M", bound=BaseModel)


class _FormModel(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                return None
        return value

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class AddProductInput(_FormModel):
    """Add-product form."""
    name: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1)
    category: Category
    imei: Optional[str] = None
    color: Optional[str] = None
    storage: Optional[str] = None
    mfg_date: Optional[date] = None
    purchase_price: Decimal = Field(..., ge=0)
    sale_price: Decimal = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    supplier: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Galaxy A14",
                "brand": "Samsung",
                "category": "mobile",
                "storage": "128GB",
                "purchasePrice": "30000",
                "salePrice": "35000",
                "quantity": 2,
            }
        }


class RecordSaleInput(_FormModel):
    """Record-sale form."""
    product_id: str = Field(..., min_length=1)
    sale_price: Decimal = Field(..., ge=0)
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_method: PaymentMethod


def _field_name(model: Type[BaseModel], loc: Any) -> str:
    """Map a pydantic error location (field name or camelCase alias) to the field name."""

    head = str(loc[0]) if loc else "__root__"
    for name, info in model.model_fields.items():
        if head == name or head == info.alias:
            return name
    return head


def _parse(model: Type[M], form: Mapping[str, Any]) -> M:
    # A blank form field counts as not submitted, so the field default applies.
    submitted = {
        key: value for key, value in form.items() if not (isinstance(value, str) and not value.strip())
    }
    try:
        return model.model_validate(submitted)
    except PydanticValidationError as exc:
        field_errors: Dict[str, str] = {}
        for error in exc.errors():
            field_errors.setdefault(_field_name(model, error.get("loc")), str(error.get("msg")))
        raise ValidationError(f"Invalid {model.__name__} input", field_errors) from exc


def parse_add_product_form(form: Mapping[str, Any]) -> AddProductInput:
    """Validate a raw add-product submission; raises ValidationError with per-field messages."""

    return _parse(AddProductInput, form)


def parse_record_sale_form(form: Mapping[str, Any]) -> RecordSaleInput:
    """Validate a raw record-sale submission; raises ValidationError with per-field messages."""

    return _parse(RecordSaleInput, form)


__all__ = [
    "AddProductInput",
    "RecordSaleInput",
    "parse_add_product_form",
    "parse_record_sale_form",
]
