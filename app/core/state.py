import logging
from typing import Optional

from openai import AsyncOpenAI

from app.core.config import Settings
from app.core.errors import ValidationError
from app.core.session import SessionGate
from app.evaluation.client import ClaimEvaluator
from app.lifecycle.controller import ClaimLifecycleController
from app.schemas.claim import Theme
from app.storage.adapter import THEME_KEY, JsonFileStorage, Storage

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class AppState:
    """
    Everything the service remembers: session, theme, claims and drafts.
    Persistence goes through the injected Storage only.
    """

    def __init__(self, storage: Storage, evaluator, admin_token: str):
        self.storage = storage
        self.gate = SessionGate(storage, admin_token)
        self.claims = ClaimLifecycleController(storage, evaluator)
        self.theme: Theme = self._load_theme()

    def _load_theme(self) -> Theme:
        saved = self.storage.load(THEME_KEY)
        if saved in THEMES:
            return saved
        if saved is not None:
            logger.warning(f"Ignoring stored theme {saved!r}")
        return DEFAULT_THEME

    def set_theme(self, theme: Theme) -> Theme:
        self.theme = theme
        self.storage.save(THEME_KEY, theme)
        return theme

    def toggle_theme(self) -> Theme:
        return self.set_theme("dark" if self.theme == "light" else "light")

    def logout(self) -> None:
        ended = self.gate.logout()
        if ended:
            self.claims.reset_draft(ended.name)

    def hard_reset(self) -> None:
        """Wipe every persisted category and all in-memory state."""
        if self.claims.busy:
            raise ValidationError("A submission is being evaluated. Reset once it completes.")
        self.storage.clear_all()
        self.gate.current = None
        self.theme = DEFAULT_THEME
        self.claims.reset()
        logger.warning("Full reset: session, theme and claims purged")


_state: Optional[AppState] = None


def build_state(settings: Settings) -> AppState:
    storage = JsonFileStorage(settings.STORAGE_DIR)
    client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
    evaluator = ClaimEvaluator(client, model=settings.OPENAI_CHAT_MODEL)
    return AppState(storage, evaluator, admin_token=settings.ADMIN_ACCESS_TOKEN)


def set_state(state: Optional[AppState]) -> None:
    global _state
    _state = state


def get_state() -> AppState:
    """FastAPI dependency returning the process-wide application state."""
    if _state is None:
        raise RuntimeError("Application state not initialized")
    return _state
