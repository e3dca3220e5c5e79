"""
schemas.py — Consultant profile and onboarding contracts.

Defines:
  - OnboardingRequest    POST /api/onboarding body
  - BankDetailsRequest   PATCH /api/me/bank body
  - ConsultantOut        a consultant's own profile (never masked)

is_admin appears only on output models: no request can set it.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BankDetailsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bank_beneficiary: str = Field(..., min_length=1, max_length=200)
    bank_name: str = Field(..., min_length=1, max_length=200)
    bank_account: str = Field(..., min_length=4, max_length=64)
    bank_ifsc: str = Field(..., min_length=4, max_length=20)

    @field_validator("bank_ifsc")
    @classmethod
    def _upper_ifsc(cls, value: str) -> str:
        return value.strip().upper()


class OnboardingRequest(BankDetailsRequest):
    """
    One-time setup submitted by a consultant after first sign-in.
    email must equal the authenticated session's address (checked in the route).
    """
    email: str = Field(..., min_length=3, max_length=320)
    consultant_id: str = Field(..., min_length=1, max_length=64)
    name: Optional[str] = Field(default=None, max_length=200)
    pan: str = Field(..., min_length=1, max_length=20)
    gstin: Optional[str] = Field(default=None, max_length=20)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("consultant_id")
    @classmethod
    def _canonical_id(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("consultant_id must not be blank")
        return value

    @field_validator("pan")
    @classmethod
    def _upper_pan(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("pan must not be blank")
        return value

    @field_validator("gstin")
    @classmethod
    def _upper_gstin(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().upper() or None


class ConsultantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    consultant_id: Optional[str] = None
    email: str
    name: Optional[str] = None
    pan: Optional[str] = None
    gstin: Optional[str] = None
    bank_beneficiary: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account: Optional[str] = None
    bank_ifsc: Optional[str] = None
    is_admin: bool = False
    onboarded: bool = False
