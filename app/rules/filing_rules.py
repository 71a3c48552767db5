# Filing policy checks enforced locally, before and around the evaluation call.
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from app.core.errors import CapacityError, ValidationError
from app.schemas.claim import MONTHS

MONTHLY_CAP = 1200.0
MAX_DOCUMENTS = 2
MAX_BILLING_MONTHS = 2

FILTER_RANGES: Dict[str, Optional[timedelta]] = {
    "all": None,
    "15d": timedelta(days=15),
    "1m": timedelta(days=30),
    "3m": timedelta(days=90),
    "1y": timedelta(days=365),
}


def max_eligible(month_count: int, monthly_cap: float = MONTHLY_CAP) -> float:
    return monthly_cap * month_count


def toggle_month(selected: List[str], month: str) -> List[str]:
    """
    Returns the new month selection after toggling `month`.
    The input list is never modified; a refused toggle raises and leaves it as is.
    """
    if month not in MONTHS:
        raise ValidationError(f"Unknown billing month '{month}'.", details={"month": month})

    if month in selected:
        return [m for m in selected if m != month]

    if len(selected) >= MAX_BILLING_MONTHS:
        raise ValidationError(
            f"Filing policy: Maximum {MAX_BILLING_MONTHS} cycles per submission.",
            details={"selected": list(selected), "attempted": month},
        )
    return [*selected, month]


def check_document_capacity(pending_count: int, incoming_count: int) -> None:
    if pending_count + incoming_count > MAX_DOCUMENTS:
        raise CapacityError(
            f"Limit exceeded: System restricted to {MAX_DOCUMENTS} documents per filing.",
            details={"pending": pending_count, "incoming": incoming_count},
        )


def check_submission(document_count: int, months: List[str]) -> None:
    if document_count == 0 or not months:
        raise ValidationError("Document evidence and billing cycles are required.")
    if document_count > MAX_DOCUMENTS:
        raise CapacityError(f"At most {MAX_DOCUMENTS} documents may be filed at once.")
    if len(months) > MAX_BILLING_MONTHS or len(set(months)) != len(months):
        raise ValidationError(
            f"Select between 1 and {MAX_BILLING_MONTHS} distinct billing months."
        )


def resolve_range(range_key: str) -> Optional[timedelta]:
    if range_key not in FILTER_RANGES:
        raise ValidationError(
            f"Unknown date range '{range_key}'. Use one of: {', '.join(FILTER_RANGES)}."
        )
    return FILTER_RANGES[range_key]


def submitted_within(submitted_at: datetime, window: Optional[timedelta], now: Optional[datetime] = None) -> bool:
    if window is None:
        return True
    now = now or datetime.now(timezone.utc)
    if submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)
    return now - submitted_at <= window
