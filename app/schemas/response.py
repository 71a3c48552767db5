from dataclasses import dataclass
from typing import List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from app.core.errors import ExtractionFailure
from app.schemas.claim import Claim, ClaimDetails, FilingDraft, ReimbursementType, Theme, UserRole

Verdict = Literal["Auto-Approved", "Needs Review"]


class ExtractedDetails(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    provider: str
    billingDate: str
    totalAmount: float = Field(ge=0)
    customerName: str


class EvaluationResult(BaseModel):
    """Exact shape the evaluation service must answer with."""

    model_config = ConfigDict(extra="forbid", strict=True)

    details: ExtractedDetails
    eligibleAmount: float = Field(ge=0)
    status: Verdict
    reasoning: str

    def claim_details(self) -> ClaimDetails:
        return ClaimDetails.model_validate(self.details.model_dump())


@dataclass(frozen=True)
class Ok:
    value: EvaluationResult


@dataclass(frozen=True)
class Err:
    error: ExtractionFailure


ParseResult = Union[Ok, Err]


# ---------- HTTP payloads ----------

class LoginRequest(BaseModel):
    role: UserRole
    credential: str = ""


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    name: str
    role: UserRole


class ThemeRequest(BaseModel):
    theme: Theme


class ThemeResponse(BaseModel):
    theme: Theme


class TypeRequest(BaseModel):
    type: ReimbursementType


class RejectRequest(BaseModel):
    reason: str = ""


class DocumentSummary(BaseModel):
    name: str
    mime_type: str


class DraftResponse(BaseModel):
    documents: List[DocumentSummary]
    months: List[str]
    type: ReimbursementType

    @classmethod
    def from_draft(cls, draft: FilingDraft) -> "DraftResponse":
        return cls(
            documents=[DocumentSummary(name=f.name, mime_type=f.mime_type) for f in draft.files],
            months=list(draft.months),
            type=draft.type,
        )


class DashboardStats(BaseModel):
    total: int
    pending: int
    approved: int


class ClaimListResponse(BaseModel):
    range: str
    claims: List[Claim]
    stats: DashboardStats


class HistoryResponse(BaseModel):
    user_id: str
    claims: List[Claim]
