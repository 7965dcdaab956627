# contractdesk/schemas.py
"""Request payload schemas for the JSON API.

Optional numbers follow one convention everywhere: ``None`` means the value
was not provided, ``0`` is a real zero. ``area``/``total`` on line items and
``subtotal``/``grand_total`` on documents are the optional ones.
"""
import re
from datetime import date as date_type
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

_UNSAFE = re.compile(r"[<>]|javascript:|on\w+=", re.IGNORECASE)
_PHONE_SEPARATORS = re.compile(r"[\s\-()]")
_PHONE = re.compile(r"^\d{10}$")
_NAME = re.compile(r"^[A-Za-z\s]+$")


def clean_text(value):
    if not isinstance(value, str):
        return value
    return _UNSAFE.sub("", value).strip()


def normalize_phone(value):
    if not isinstance(value, str):
        return value
    digits = _PHONE_SEPARATORS.sub("", value)
    if not _PHONE.match(digits):
        raise ValueError("Phone number must be exactly 10 digits")
    return digits


def _check_name(value: str) -> str:
    if not _NAME.match(value):
        raise ValueError("Name can only contain letters and spaces")
    return value


def _check_terms(value: list) -> list:
    cleaned = [clean_text(t) for t in value]
    if any(len(t) > 1000 for t in cleaned):
        raise ValueError("Term must be less than 1000 characters")
    return [t for t in cleaned if t]


Amount = Annotated[float, Field(ge=0)]
Description = Annotated[str, BeforeValidator(clean_text), Field(min_length=1, max_length=1000)]
Note = Annotated[str, BeforeValidator(clean_text), Field(max_length=500)]
ClientName = Annotated[str, BeforeValidator(clean_text), Field(min_length=1, max_length=100), AfterValidator(_check_name)]
Address = Annotated[str, BeforeValidator(clean_text), Field(min_length=10, max_length=500)]
Phone = Annotated[str, BeforeValidator(normalize_phone)]
Terms = Annotated[List[str], AfterValidator(_check_terms)]


class LineItemIn(BaseModel):
    description: Description
    area: Optional[Amount] = None
    rate: Amount
    total: Optional[Amount] = None
    note: Optional[Note] = None


class ExtraWorkIn(BaseModel):
    description: Description
    total: Amount
    note: Optional[Note] = None


class SiteImageIn(BaseModel):
    url: str = Field(min_length=1)
    public_id: str = Field(min_length=1)
    description: Optional[Annotated[str, BeforeValidator(clean_text), Field(max_length=200)]] = None


class PaymentIn(BaseModel):
    amount: float = Field(gt=0)
    date: Optional[date_type] = None
    note: Optional[Annotated[str, BeforeValidator(clean_text), Field(max_length=200)]] = None


LineItems = Annotated[List[LineItemIn], Field(min_length=1)]


class QuotationCreate(BaseModel):
    client_name: ClientName
    client_address: Address
    client_phone: Phone
    date: date_type = Field(default_factory=date_type.today)
    line_items: LineItems
    subtotal: Optional[Amount] = None
    discount: Amount = 0.0
    grand_total: Optional[Amount] = None
    terms: Terms = Field(default_factory=list)
    note: Optional[Note] = None


# Fields a patch may omit but never set to null
_NOT_NULL_ON_PATCH = (
    "client_name", "client_address", "client_phone", "date",
    "line_items", "discount", "terms", "status",
)


class QuotationPatch(BaseModel):
    client_name: Optional[ClientName] = None
    client_address: Optional[Address] = None
    client_phone: Optional[Phone] = None
    date: Optional[date_type] = None
    line_items: Optional[LineItems] = None
    subtotal: Optional[Amount] = None
    discount: Optional[Amount] = None
    grand_total: Optional[Amount] = None
    terms: Optional[Terms] = None
    note: Optional[Note] = None
    status: Optional[Literal["pending", "accepted", "rejected"]] = None
    expected_version: Optional[int] = None

    @model_validator(mode="after")
    def _reject_nulls(self):
        for name in _NOT_NULL_ON_PATCH:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """Document fields present in the request, status excluded."""
        return self.model_dump(exclude_unset=True, exclude={"status", "expected_version"})


class StatusChange(BaseModel):
    status: Literal["pending", "accepted", "rejected"]
    expected_version: Optional[int] = None


class ProjectPatch(BaseModel):
    client_name: Optional[ClientName] = None
    client_address: Optional[Address] = None
    client_phone: Optional[Phone] = None
    date: Optional[date_type] = None
    line_items: Optional[LineItems] = None
    extra_work: Optional[List[ExtraWorkIn]] = None
    subtotal: Optional[Amount] = None
    discount: Optional[Amount] = None
    grand_total: Optional[Amount] = None
    terms: Optional[Terms] = None
    note: Optional[Note] = None
    site_images: Optional[List[SiteImageIn]] = None
    status: Optional[Literal["ongoing", "completed", "cancelled"]] = None
    expected_version: Optional[int] = None

    @model_validator(mode="after")
    def _reject_nulls(self):
        for name in _NOT_NULL_ON_PATCH + ("extra_work", "site_images"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"expected_version"})


def parse_payload(schema, payload):
    """Validate ``payload`` against ``schema`` or raise ValidationError."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Expected a JSON object")
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        details = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ())) or None,
                "message": err.get("msg"),
            }
            for err in exc.errors()
        ]
        raise ValidationError("Invalid input", details=details) from None
