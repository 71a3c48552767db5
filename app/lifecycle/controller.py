import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pydantic
from pydantic import TypeAdapter

from app.core.errors import ClaimNotFound, StorageCorruption, TransitionError, ValidationError
from app.rules.filing_rules import (
    check_document_capacity,
    check_submission,
    resolve_range,
    submitted_within,
    toggle_month,
)
from app.schemas.claim import Claim, FilingDraft, ReimbursementType, Session, UploadedFile
from app.schemas.response import DashboardStats
from app.storage.adapter import CLAIMS_KEY, Storage

logger = logging.getLogger(__name__)

_claim_list = TypeAdapter(List[Claim])


class ClaimLifecycleController:
    """
    Owns the claim list and the employees' in-progress filings.

    Claims enter as Auto-Approved or Needs Review (whatever the evaluator
    says) and leave only through approve/reject, which are terminal. The
    whole list is written to storage after every mutation.
    """

    def __init__(self, storage: Storage, evaluator):
        self.storage = storage
        self.evaluator = evaluator
        self._claims: Dict[str, Claim] = self._load()
        self._drafts: Dict[str, FilingDraft] = {}
        self._in_flight: Dict[str, asyncio.Lock] = {}

    # ---------- persistence ----------

    def _load(self) -> Dict[str, Claim]:
        raw = self.storage.load(CLAIMS_KEY)
        if raw is None:
            return {}
        try:
            claims = _claim_list.validate_python(raw)
        except pydantic.ValidationError as e:
            logger.warning(str(StorageCorruption.for_key(CLAIMS_KEY, e)))
            return {}
        logger.info(f"Loaded {len(claims)} stored claims")
        return {c.id: c for c in claims}

    def _persist(self) -> None:
        self.storage.save(
            CLAIMS_KEY,
            [c.model_dump(mode="json", by_alias=True) for c in self._newest_first(self._claims.values())],
        )

    @staticmethod
    def _newest_first(claims) -> List[Claim]:
        return sorted(claims, key=lambda c: c.submitted_at, reverse=True)

    def _new_id(self) -> str:
        while True:
            claim_id = uuid.uuid4().hex[:9]
            if claim_id not in self._claims:
                return claim_id

    # ---------- filing drafts ----------

    def draft_for(self, user_id: str) -> FilingDraft:
        return self._drafts.setdefault(user_id, FilingDraft())

    def _editable_draft(self, user_id: str) -> FilingDraft:
        # The in-flight submission clears this draft when it succeeds.
        if self.is_submitting(user_id):
            raise ValidationError("The filing is locked while its submission is being evaluated.")
        return self.draft_for(user_id)

    def toggle_month(self, user_id: str, month: str) -> FilingDraft:
        draft = self._editable_draft(user_id)
        draft.months = toggle_month(draft.months, month)
        return draft

    def set_type(self, user_id: str, reimbursement_type: ReimbursementType) -> FilingDraft:
        draft = self._editable_draft(user_id)
        draft.type = reimbursement_type
        return draft

    def add_documents(self, user_id: str, files: Sequence[UploadedFile]) -> FilingDraft:
        draft = self._editable_draft(user_id)
        check_document_capacity(len(draft.files), len(files))
        draft.files = [*draft.files, *files]
        return draft

    def remove_document(self, user_id: str, index: int) -> FilingDraft:
        draft = self._editable_draft(user_id)
        if not 0 <= index < len(draft.files):
            raise ValidationError(f"No document at position {index}.")
        draft.files = [f for i, f in enumerate(draft.files) if i != index]
        return draft

    def reset_draft(self, user_id: str) -> None:
        self._drafts.pop(user_id, None)

    # ---------- submission ----------

    def is_submitting(self, user_id: str) -> bool:
        lock = self._in_flight.get(user_id)
        return lock is not None and lock.locked()

    @property
    def busy(self) -> bool:
        """True while any submission is waiting on the evaluator."""
        return any(lock.locked() for lock in self._in_flight.values())

    async def submit(self, session: Session) -> Claim:
        draft = self.draft_for(session.name)
        check_submission(len(draft.files), draft.months)

        if self.is_submitting(session.name):
            raise ValidationError("A submission is already being evaluated. Wait for its result.")

        # Second submissions are refused, never queued, so the lock has no waiters once released.
        lock = self._in_flight.setdefault(session.name, asyncio.Lock())
        try:
            async with lock:
                files, months, reimbursement_type = list(draft.files), list(draft.months), draft.type
                result = await self.evaluator.evaluate(files, reimbursement_type, months, session.name)

                claim = Claim(
                    id=self._new_id(),
                    user_id=session.name,
                    details=result.claim_details(),
                    eligible_amount=result.eligibleAmount,
                    status=result.status,
                    reasoning=result.reasoning,
                    months=months,
                    type=reimbursement_type,
                    submitted_at=datetime.now(timezone.utc),
                )
                self._claims[claim.id] = claim
                self._persist()
                self.reset_draft(session.name)
        finally:
            self._in_flight.pop(session.name, None)

        logger.info(f"Filed claim {claim.id} for '{claim.user_id}' with status {claim.status}")
        return claim

    # ---------- admin decisions ----------

    def get(self, claim_id: str) -> Claim:
        claim = self._claims.get(claim_id)
        if claim is None:
            raise ClaimNotFound.for_id(claim_id)
        return claim

    def _decide(self, claim_id: str, **changes) -> Claim:
        claim = self.get(claim_id)
        if claim.is_decided:
            raise TransitionError(
                f"Claim '{claim_id}' is already {claim.status}; decisions are final.",
                details={"claim_id": claim_id, "status": claim.status},
            )
        updated = claim.model_copy(update=changes)
        self._claims[claim_id] = updated
        self._persist()
        logger.info(f"Claim {claim_id}: {claim.status} -> {updated.status}")
        return updated

    def approve(self, claim_id: str) -> Claim:
        return self._decide(claim_id, status="Approved")

    def reject(self, claim_id: str, reason: str) -> Claim:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required.", details={"claim_id": claim_id})
        return self._decide(claim_id, status="Rejected", admin_reason=reason)

    def delete(self, claim_id: str) -> None:
        self.get(claim_id)
        del self._claims[claim_id]
        self._persist()
        logger.info(f"Deleted claim {claim_id}")

    def clear_all(self) -> None:
        count = len(self._claims)
        self._claims.clear()
        self._persist()
        logger.info(f"Cleared {count} claims")

    def reset(self) -> None:
        """Forget all in-memory state without writing; used after storage is wiped."""
        self._claims.clear()
        self._drafts.clear()

    # ---------- queries ----------

    @property
    def claims(self) -> List[Claim]:
        return self._newest_first(self._claims.values())

    def history(self, user_id: str) -> List[Claim]:
        return [c for c in self.claims if c.user_id == user_id]

    def list_claims(self, range_key: str = "all", now: Optional[datetime] = None) -> List[Claim]:
        window = resolve_range(range_key)
        return [c for c in self.claims if submitted_within(c.submitted_at, window, now)]

    @staticmethod
    def stats(claims: Sequence[Claim]) -> DashboardStats:
        return DashboardStats(
            total=len(claims),
            pending=sum(1 for c in claims if not c.is_decided),
            approved=sum(1 for c in claims if c.status == "Approved"),
        )
