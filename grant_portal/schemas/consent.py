"""
Consent form payloads.

The same field model validates the fill and digital-signature request bodies
on the server and the editing state of the client-side consent workflow, so
both sides agree on what a complete consent form is.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError


FIELD_MESSAGES = {
    "name": "Name is required",
    "address": "Address is required",
    "farmCode": "Farm code is required",
    "email": "Valid email is required",
}


class ConsentFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    farm_code: str = Field(min_length=1, alias="farmCode")
    email: EmailStr

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class FillConsentRequest(ConsentFields):
    signature: Optional[str] = Field(default=None, description="PNG data URL of the drawn signature")


class DigitalSignatureSubmit(ConsentFields):
    signature: str = Field(min_length=1, description="PNG data URL of the drawn signature")


def field_errors_from(exc: ValidationError) -> dict[str, str]:
    """Collapse a pydantic error into one message per wire field name."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        if not error["loc"]:
            continue
        field = str(error["loc"][0])
        if field == "farm_code":
            field = "farmCode"
        errors.setdefault(field, FIELD_MESSAGES.get(field, error["msg"]))
    return errors
