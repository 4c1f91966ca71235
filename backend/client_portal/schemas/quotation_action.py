"""
Pydantic schemas for quotation accept/reject.

WHAT: Request and response models for the two-step quotation decision.

WHY: Whichever web layer hosts the services serializes these directly:
1. Validate the action string and the code format at the boundary
2. Never expose OTP hashes or internal notes
3. Give both operations a stable payload shape

HOW: Pydantic v2 models; QuotationSummary reads from the ORM row via
from_attributes.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from client_portal.models import QuotationActionType, QuotationStatus


class QuotationActionRequest(BaseModel):
    """
    Step one: ask for a code to accept or reject a quotation.

    action accepts "accept" / "reject" in any case.
    """

    action: QuotationActionType = Field(
        ...,
        description="accept or reject",
    )

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, v):
        """Normalize case before enum validation."""
        if isinstance(v, str):
            return v.strip().upper()
        return v


class QuotationActionConfirm(BaseModel):
    """Step two: confirm the pending action with the emailed code."""

    otp: str = Field(
        ...,
        pattern=r"^[0-9]{6}$",
        description="6-digit one-time password",
    )


class OtpRequestedResponse(BaseModel):
    """Response for a successfully issued code."""

    message: str = Field(..., description="Human-readable confirmation")
    quotation_id: int
    action: QuotationActionType
    expires_at: datetime = Field(..., description="When the code stops working (UTC)")


class QuotationSummary(BaseModel):
    """
    Quotation fields returned after a decision.

    action is filled from the consumed code, not from the quotation row.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    status: QuotationStatus
    status_changed_at: Optional[datetime] = None
    status_changed_by: Optional[int] = None
    action: Optional[QuotationActionType] = None


class QuotationActionConfirmedResponse(BaseModel):
    """Response for a confirmed accept/reject."""

    message: str
    quotation: QuotationSummary
