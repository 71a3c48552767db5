# app/main.py

import logging
from typing import List

from fastapi import FastAPI, HTTPException, Depends, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

load_dotenv()

from app.core.config import settings
from app.core.errors import ClaimsError
from app.core.logging import setup_logging
from app.core.security import admin_auth, create_access_token, employee_auth, session_auth
from app.core.state import AppState, build_state, get_state, set_state
from app.documents.encoder import encode_files
from app.schemas.claim import Claim, Session
from app.schemas.response import (
    ClaimListResponse,
    DraftResponse,
    HistoryResponse,
    LoginRequest,
    LoginResponse,
    RejectRequest,
    ThemeRequest,
    ThemeResponse,
    TypeRequest,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="AutoClaim Reimbursement Filing", version="1.0.0")


@app.on_event("startup")
def startup():
    """
    Configures logging and restores session, theme and claims from storage.
    """
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE or None)

    if not settings.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY is not set. Set it in environment or .env")

    set_state(build_state(settings))
    logger.info("AutoClaim service ready")


@app.exception_handler(ClaimsError)
async def claims_error_handler(request: Request, exc: ClaimsError):
    logger.info(f"{request.method} {request.url.path} refused: {exc}")
    body = exc.to_dict()
    body.pop("details", None)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.get("/health")
async def health():
    return {"status": "ok"}


# ---------- session ----------

@app.post("/v1/auth/login", response_model=LoginResponse)
async def login(req: LoginRequest, state: AppState = Depends(get_state)):
    """
    Employees log in with their full name, admins with the shared access token.

    Response:
      { "access_token": "...", "token_type": "bearer", "expires_in": 1800, "name": "...", "role": "..." }
    """
    session = state.gate.login(req.role, req.credential)
    return LoginResponse(
        access_token=create_access_token(session),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        name=session.name,
        role=session.role,
    )


@app.post("/v1/auth/logout")
async def logout(_session: Session = Depends(session_auth), state: AppState = Depends(get_state)):
    state.logout()
    return {"status": "logged_out"}


# ---------- preferences & system ----------

@app.get("/v1/preferences/theme", response_model=ThemeResponse)
async def get_theme(state: AppState = Depends(get_state)):
    return ThemeResponse(theme=state.theme)


@app.put("/v1/preferences/theme", response_model=ThemeResponse)
async def put_theme(req: ThemeRequest, state: AppState = Depends(get_state)):
    return ThemeResponse(theme=state.set_theme(req.theme))


@app.post("/v1/preferences/theme/toggle", response_model=ThemeResponse)
async def toggle_theme(state: AppState = Depends(get_state)):
    return ThemeResponse(theme=state.toggle_theme())


@app.post("/v1/system/reset")
async def system_reset(confirm: bool = Query(False), state: AppState = Depends(get_state)):
    """
    Purges all persisted data: claims, theme and session.
    """
    if not confirm:
        raise HTTPException(status_code=400, detail="Full reset requires confirm=true.")
    state.hard_reset()
    return {"status": "reset"}


# ---------- employee filing ----------

@app.get("/v1/filing/draft", response_model=DraftResponse)
async def get_draft(session: Session = Depends(employee_auth), state: AppState = Depends(get_state)):
    return DraftResponse.from_draft(state.claims.draft_for(session.name))


@app.post("/v1/filing/documents", response_model=DraftResponse)
async def upload_documents(
    files: List[UploadFile] = File(...),
    session: Session = Depends(employee_auth),
    state: AppState = Depends(get_state),
):
    pending = len(state.claims.draft_for(session.name).files)
    encoded = await encode_files(files, pending)
    draft = state.claims.add_documents(session.name, encoded)
    return DraftResponse.from_draft(draft)


@app.delete("/v1/filing/documents/{index}", response_model=DraftResponse)
async def remove_document(index: int, session: Session = Depends(employee_auth), state: AppState = Depends(get_state)):
    return DraftResponse.from_draft(state.claims.remove_document(session.name, index))


@app.post("/v1/filing/months/{month}", response_model=DraftResponse)
async def toggle_month(month: str, session: Session = Depends(employee_auth), state: AppState = Depends(get_state)):
    return DraftResponse.from_draft(state.claims.toggle_month(session.name, month))


@app.put("/v1/filing/type", response_model=DraftResponse)
async def set_type(req: TypeRequest, session: Session = Depends(employee_auth), state: AppState = Depends(get_state)):
    return DraftResponse.from_draft(state.claims.set_type(session.name, req.type))


@app.post("/v1/filing/submit", response_model=Claim)
async def submit_filing(session: Session = Depends(employee_auth), state: AppState = Depends(get_state)):
    """
    Sends the draft's documents to the evaluation service and files the resulting claim.
    The draft is cleared on success and kept on failure so the user can resubmit.
    """
    return await state.claims.submit(session)


@app.get("/v1/claims/mine", response_model=HistoryResponse)
async def my_claims(session: Session = Depends(employee_auth), state: AppState = Depends(get_state)):
    return HistoryResponse(user_id=session.name, claims=state.claims.history(session.name))


# ---------- admin dashboard ----------

@app.get("/v1/admin/claims", response_model=ClaimListResponse)
async def list_claims(
    range_key: str = Query("all", alias="range"),
    _admin: Session = Depends(admin_auth),
    state: AppState = Depends(get_state),
):
    claims = state.claims.list_claims(range_key)
    return ClaimListResponse(range=range_key, claims=claims, stats=state.claims.stats(claims))


@app.get("/v1/admin/claims/{claim_id}", response_model=Claim)
async def inspect_claim(claim_id: str, _admin: Session = Depends(admin_auth), state: AppState = Depends(get_state)):
    return state.claims.get(claim_id)


@app.post("/v1/admin/claims/{claim_id}/approve", response_model=Claim)
async def approve_claim(claim_id: str, _admin: Session = Depends(admin_auth), state: AppState = Depends(get_state)):
    return state.claims.approve(claim_id)


@app.post("/v1/admin/claims/{claim_id}/reject", response_model=Claim)
async def reject_claim(
    claim_id: str,
    req: RejectRequest,
    _admin: Session = Depends(admin_auth),
    state: AppState = Depends(get_state),
):
    return state.claims.reject(claim_id, req.reason)


@app.delete("/v1/admin/claims/{claim_id}")
async def delete_claim(claim_id: str, _admin: Session = Depends(admin_auth), state: AppState = Depends(get_state)):
    state.claims.delete(claim_id)
    return {"status": "deleted", "id": claim_id}


@app.delete("/v1/admin/claims")
async def clear_claims(_admin: Session = Depends(admin_auth), state: AppState = Depends(get_state)):
    state.claims.clear_all()
    return {"status": "cleared"}
