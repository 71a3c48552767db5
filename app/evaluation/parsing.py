import json

import pydantic

from app.core.errors import ExtractionFailure
from app.schemas.response import Err, EvaluationResult, Ok, ParseResult

# Tolerance for the model's rounding when it reports the capped amount.
AMOUNT_TOLERANCE = 0.01


def parse_evaluation(text: str, max_eligible: float) -> ParseResult:
    """
    Validate the evaluation service's raw answer.

    Anything that is not exactly the expected JSON shape, or whose eligible
    amount exceeds min(total billed, ceiling), is an Err. Nothing is repaired.
    """
    if not text:
        return Err(ExtractionFailure.insufficient_clarity("empty response"))

    try:
        payload = json.loads(text)
    except ValueError as e:
        return Err(ExtractionFailure.insufficient_clarity(f"invalid JSON: {e}"))

    try:
        result = EvaluationResult.model_validate(payload)
    except pydantic.ValidationError as e:
        return Err(ExtractionFailure.insufficient_clarity(
            f"response does not match schema: {e.error_count()} error(s)"
        ))

    limit = min(result.details.totalAmount, max_eligible)
    if result.eligibleAmount > limit + AMOUNT_TOLERANCE:
        return Err(ExtractionFailure.insufficient_clarity(
            f"eligibleAmount {result.eligibleAmount:.2f} exceeds limit {limit:.2f}"
        ))

    return Ok(result)
