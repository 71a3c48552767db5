from datetime import datetime
from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ReimbursementType = Literal["WiFi", "Mobile"]
UserRole = Literal["employee", "admin"]
Theme = Literal["light", "dark"]

# "Pending" is never produced by evaluation; kept so stored claims using it still load.
ClaimStatus = Literal["Auto-Approved", "Needs Review", "Approved", "Pending", "Rejected"]
TERMINAL_STATUSES = frozenset({"Approved", "Rejected"})

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Session(BaseModel):
    name: str = Field(min_length=1)
    role: UserRole


class UploadedFile(CamelModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    data: str = Field(alias="base64")
    mime_type: str = Field(alias="mimeType")
    name: str


class ClaimDetails(CamelModel):
    provider: str
    billing_date: str = Field(alias="billingDate")
    total_amount: float = Field(alias="totalAmount", ge=0)
    customer_name: str = Field(alias="customerName")
    extracted_text: Optional[str] = Field(default=None, alias="extractedText")


def check_months(months: List[str]) -> List[str]:
    if not 1 <= len(months) <= 2:
        raise ValueError("a claim covers one or two billing months")
    if len(set(months)) != len(months):
        raise ValueError("billing months must be unique")
    return months


class Claim(CamelModel):
    id: str
    user_id: str = Field(alias="userId")
    details: ClaimDetails
    eligible_amount: float = Field(alias="eligibleAmount", ge=0)
    status: ClaimStatus
    reasoning: str
    admin_reason: Optional[str] = Field(default=None, alias="adminReason")
    months: List[str]
    type: ReimbursementType
    submitted_at: datetime = Field(alias="submittedAt")

    @field_validator("months")
    @classmethod
    def _months_in_range(cls, v: List[str]) -> List[str]:
        return check_months(v)

    @property
    def is_decided(self) -> bool:
        return self.status in TERMINAL_STATUSES


class FilingDraft(CamelModel):
    """In-progress filing form of one employee."""

    files: List[UploadedFile] = Field(default_factory=list)
    months: List[str] = Field(default_factory=list)
    type: ReimbursementType = "WiFi"
