import logging
import time
from typing import Any, Dict, List, Sequence

from openai import APIError, AsyncOpenAI

from app.core.errors import ExtractionFailure
from app.documents.encoder import PDF_MIME
from app.evaluation.parsing import parse_evaluation
from app.evaluation.prompts import SYSTEM_BILLING_AUDITOR, build_user_prompt
from app.rules.filing_rules import MONTHLY_CAP, max_eligible
from app.schemas.claim import UploadedFile
from app.schemas.response import Err, EvaluationResult

logger = logging.getLogger(__name__)


def document_part(f: UploadedFile) -> Dict[str, Any]:
    data_url = f"data:{f.mime_type};base64,{f.data}"
    if f.mime_type == PDF_MIME:
        return {"type": "file", "file": {"filename": f.name, "file_data": data_url}}
    return {"type": "image_url", "image_url": {"url": data_url}}


class ClaimEvaluator:
    """
    Sends billing documents to the chat model and returns its verdict.

    OCR, identity matching and the capped arithmetic all happen on the model
    side; this class builds the request and refuses any answer that does not
    parse into EvaluationResult. One call per submission, no retries.
    """

    def __init__(self, client: AsyncOpenAI, model: str, monthly_cap: float = MONTHLY_CAP):
        self.client = client
        self.model = model
        self.monthly_cap = monthly_cap

    def build_messages(
        self,
        files: Sequence[UploadedFile],
        reimbursement_type: str,
        months: List[str],
        expected_name: str,
    ) -> List[Dict[str, Any]]:
        prompt = build_user_prompt(
            document_count=len(files),
            reimbursement_type=reimbursement_type,
            months=months,
            expected_name=expected_name,
            monthly_cap=self.monthly_cap,
            max_eligible=max_eligible(len(months), self.monthly_cap),
        )
        content = [document_part(f) for f in files]
        content.append({"type": "text", "text": prompt})
        return [
            {"role": "system", "content": SYSTEM_BILLING_AUDITOR},
            {"role": "user", "content": content},
        ]

    async def evaluate(
        self,
        files: Sequence[UploadedFile],
        reimbursement_type: str,
        months: List[str],
        expected_name: str,
    ) -> EvaluationResult:
        ceiling = max_eligible(len(months), self.monthly_cap)
        messages = self.build_messages(files, reimbursement_type, months, expected_name)

        logger.info(
            f"Evaluating {reimbursement_type} claim for '{expected_name}': "
            f"{len(files)} document(s), months={months}, ceiling={ceiling:.2f}"
        )
        start = time.time()
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0,
                response_format={"type": "json_object"},
            )
        except APIError as e:
            logger.warning(f"Evaluation service call failed: {e}")
            raise ExtractionFailure(
                "Evaluation service unavailable. Please resubmit.",
                details={"reason": str(e)},
            ) from e
        logger.debug(f"Evaluation call completed in {time.time() - start:.3f}s")

        out_text = completion.choices[0].message.content or ""
        outcome = parse_evaluation(out_text, ceiling)
        if isinstance(outcome, Err):
            logger.warning(f"Rejected evaluation response: {outcome.error.details.get('reason')}")
            logger.debug(f"Raw output: {out_text[:1000]}")
            raise outcome.error

        result = outcome.value
        logger.info(f"Evaluation verdict: {result.status}, eligible={result.eligibleAmount:.2f}")
        return result
