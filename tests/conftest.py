import asyncio
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.state import AppState, get_state
from app.main import app
from app.schemas.claim import UploadedFile
from app.schemas.response import EvaluationResult
from app.storage.adapter import MemoryStorage

ADMIN_TOKEN = "FinAdmin"


def make_result(
    customer_name: str = "Jane Doe",
    total: float = 900.0,
    eligible: float = 900.0,
    status: str = "Auto-Approved",
    reasoning: str = "Customer name matches the claimant; amount is within the ceiling.",
) -> EvaluationResult:
    return EvaluationResult.model_validate({
        "details": {
            "provider": "Comcast",
            "billingDate": "2026-03-05",
            "totalAmount": total,
            "customerName": customer_name,
        },
        "eligibleAmount": eligible,
        "status": status,
        "reasoning": reasoning,
    })


def document(name: str = "bill.png", mime_type: str = "image/png") -> UploadedFile:
    return UploadedFile(data="aGVsbG8=", mime_type=mime_type, name=name)


class FakeEvaluator:
    """Stands in for ClaimEvaluator; records calls and returns a canned verdict."""

    def __init__(self, result: Optional[EvaluationResult] = None, error: Optional[Exception] = None):
        self.result = result or make_result()
        self.error = error
        self.calls: List[dict] = []
        self.hold: Optional[asyncio.Event] = None

    async def evaluate(self, files, reimbursement_type, months, expected_name):
        self.calls.append({
            "files": list(files),
            "type": reimbursement_type,
            "months": list(months),
            "expected_name": expected_name,
        })
        if self.hold is not None:
            await self.hold.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "autoclaim-test-secret-0123456789")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def evaluator():
    return FakeEvaluator()


@pytest.fixture
def state(storage, evaluator):
    return AppState(storage, evaluator, admin_token=ADMIN_TOKEN)


@pytest.fixture
def client(state):
    app.dependency_overrides[get_state] = lambda: state
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
