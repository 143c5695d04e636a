"""Pydantic models describing the identify request and response payloads."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contactlink.domain.errors import InvalidRequestError
from contactlink.domain.normalization import normalize_email, normalize_phone_number

if TYPE_CHECKING:
    from contactlink.domain.identity import IdentityView


class IdentifyBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class IdentifyRequestPayload(IdentifyBaseModel):
    """Incoming observation; identifiers come out in canonical form."""

    email: str | None = None
    phone_number: str | None = Field(default=None, alias="phoneNumber")

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: object) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("email must be a string")  # noqa: TRY004
        try:
            return normalize_email(value)
        except InvalidRequestError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("phone_number", mode="before")
    @classmethod
    def _normalize_phone_number(cls, value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValueError("phoneNumber must be a string or a number")
        try:
            return normalize_phone_number(value)
        except InvalidRequestError as exc:
            raise ValueError(str(exc)) from exc


class ContactPayload(IdentifyBaseModel):
    primary_contact_id: int = Field(alias="primaryContactId")
    emails: list[str]
    phone_numbers: list[str] = Field(alias="phoneNumbers")
    secondary_contact_ids: list[int] = Field(alias="secondaryContactIds")


class IdentifyResponsePayload(IdentifyBaseModel):
    contact: ContactPayload

    @classmethod
    def from_view(cls, view: IdentityView) -> IdentifyResponsePayload:
        return cls(
            contact=ContactPayload(
                primary_contact_id=view.primary_contact_id,
                emails=list(view.emails),
                phone_numbers=list(view.phone_numbers),
                secondary_contact_ids=list(view.secondary_contact_ids),
            )
        )
