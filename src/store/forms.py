"""
Form validation. Runs before any store action or network call; failures raise
``store.errors.ValidationError`` with one message per field.
"""

from __future__ import annotations

import re
from typing import ClassVar, Dict, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from api.schemas import ShippingInfo
from store.errors import ValidationError

F = TypeVar("F", bound=BaseModel)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class _Form(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    messages: ClassVar[Dict[str, str]] = {}


class ShippingForm(_Form):
    address: str = Field(min_length=5)
    city: str = Field(min_length=2)
    country: str = Field(min_length=1)
    postal_code: str = Field(min_length=3)
    phone_no: str = Field(min_length=10)


class LoginForm(_Form):
    messages = {"password": "Password is required"}

    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if not _EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v


class RegisterForm(LoginForm):
    messages = {}

    name: str = Field(min_length=2)
    password: str = Field(min_length=6)


class ProfileForm(_Form):
    name: str = Field(min_length=2)
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if not _EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v


class PasswordResetForm(_Form):
    password: str = Field(min_length=6)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


FIELD_MESSAGES: Dict[str, str] = {
    "address": "Address must be at least 5 characters",
    "city": "City is required",
    "country": "Country is required",
    "postal_code": "Postal code is required",
    "phone_no": "Phone number must be at least 10 digits",
    "name": "Name must be at least 2 characters",
    "password": "Password must be at least 6 characters",
}


def validate_form(form: Type[F], **fields) -> F:
    try:
        return form.model_validate(fields)
    except PydanticValidationError as e:
        errors: Dict[str, str] = {}
        for err in e.errors():
            loc = str(err["loc"][0]) if err["loc"] else "__all__"
            if loc in errors:
                continue
            if err["type"] == "value_error":
                errors[loc] = str(err["ctx"]["error"]) if "ctx" in err else err["msg"]
            else:
                errors[loc] = form.messages.get(loc) or FIELD_MESSAGES.get(loc, err["msg"])
        raise ValidationError(errors) from e


def validate_shipping(**fields) -> ShippingInfo:
    form = validate_form(ShippingForm, **fields)
    return ShippingInfo(**form.model_dump())


def _luhn_ok(number: str) -> bool:
    total = 0
    for i, ch in enumerate(reversed(number)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


class CardForm(_Form):
    messages = {
        "number": "Card number is invalid",
        "exp_month": "Expiry month must be 1-12",
        "exp_year": "Expiry year is invalid",
        "cvc": "CVC must be 3 or 4 digits",
    }

    number: str
    exp_month: int = Field(ge=1, le=12)
    exp_year: int = Field(ge=2000, le=2100)
    cvc: str = Field(pattern=r"^\d{3,4}$")

    @field_validator("number", mode="before")
    @classmethod
    def check_number(cls, v):
        digits = re.sub(r"[\s-]", "", str(v))
        if not digits.isdigit() or not 12 <= len(digits) <= 19 or not _luhn_ok(digits):
            raise ValueError("Card number is invalid")
        return digits

    @field_validator("exp_year", mode="before")
    @classmethod
    def expand_year(cls, v):
        # "27" means 2027
        if isinstance(v, str) and v.strip().isdigit() and len(v.strip()) == 2:
            return 2000 + int(v.strip())
        return v
