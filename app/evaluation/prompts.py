from typing import List

SYSTEM_BILLING_AUDITOR = """You are a reimbursement auditor for employee WiFi and Mobile bills.
You read the attached billing documents and extract what is printed on them.
Never invent values that are not visible on the documents.

You MUST return ONLY valid JSON with EXACTLY these top-level keys:
- details: { provider: string, billingDate: string, totalAmount: number, customerName: string }
- eligibleAmount: number
- status: one of ["Auto-Approved","Needs Review"]
- reasoning: string

No markdown. No extra commentary. No additional keys.
"""


def build_user_prompt(
    document_count: int,
    reimbursement_type: str,
    months: List[str],
    expected_name: str,
    monthly_cap: float,
    max_eligible: float,
) -> str:
    month_count = len(months)
    return (
        f"Analyze {document_count} document(s) for a {reimbursement_type} reimbursement.\n"
        f'EXPECTED EMPLOYEE: "{expected_name}"\n'
        f"SELECTED PERIOD: {', '.join(months)}\n\n"
        "CRITICAL IDENTITY CHECK:\n"
        "- You MUST find the customer name on the bill.\n"
        f'- If the name on the bill does NOT match "{expected_name}" (allow minor variations like '
        "initials or middle names, but it must be clearly the same person), set status to 'Needs Review'.\n"
        "- If the name is completely different, status MUST be 'Needs Review' and the reasoning "
        "MUST state the identity discrepancy.\n\n"
        "FINANCIAL PROTOCOL:\n"
        f"- Monthly Cap: ${monthly_cap:,.2f}\n"
        f"- Total Ceiling for {month_count} month(s): ${max_eligible:,.2f}\n"
        "- totalAmount is the sum billed across all documents.\n"
        "- eligibleAmount = Minimum(totalAmount, Ceiling)\n\n"
        "Set status to 'Auto-Approved' only for a clear identity match with legible data, "
        "otherwise 'Needs Review'.\n"
        "reasoning: a concise, professional explanation of the findings and the math."
    )
