import asyncio

import pytest

from app.core.errors import AuthenticationError, ValidationError
from app.core.session import ADMIN_DISPLAY_NAME, SessionGate, authenticate
from app.core.state import AppState
from app.storage.adapter import CLAIMS_KEY, SESSION_KEY, THEME_KEY, MemoryStorage
from conftest import ADMIN_TOKEN, FakeEvaluator, document


def test_employee_name_is_trimmed():
    session = authenticate("employee", "  Jane Doe ", ADMIN_TOKEN)
    assert session.name == "Jane Doe"
    assert session.role == "employee"


@pytest.mark.parametrize("role, credential", [
    ("employee", ""),
    ("employee", "   "),
    ("admin", ""),
    ("admin", "finadmin"),
])
def test_refused_logins(role, credential):
    with pytest.raises(AuthenticationError):
        authenticate(role, credential, ADMIN_TOKEN)


def test_admin_with_shared_token():
    session = authenticate("admin", ADMIN_TOKEN, ADMIN_TOKEN)
    assert session.name == ADMIN_DISPLAY_NAME
    assert session.role == "admin"


def test_gate_persists_and_restores_session(storage):
    SessionGate(storage, ADMIN_TOKEN).login("employee", "Jane Doe")

    restored = SessionGate(storage, ADMIN_TOKEN)
    assert restored.current is not None
    assert restored.current.name == "Jane Doe"


def test_failed_login_keeps_existing_session(storage):
    gate = SessionGate(storage, ADMIN_TOKEN)
    gate.login("employee", "Jane Doe")

    with pytest.raises(AuthenticationError):
        gate.login("admin", "guess")

    assert gate.current.name == "Jane Doe"
    assert storage.load(SESSION_KEY) == {"name": "Jane Doe", "role": "employee"}


def test_corrupt_session_reads_as_logged_out():
    storage = MemoryStorage({SESSION_KEY: '{"name": "", "role": "root"}'})
    assert SessionGate(storage, ADMIN_TOKEN).current is None


def test_logout_resets_draft_but_keeps_claims(state, storage):
    state.gate.login("employee", "Jane Doe")
    state.claims.add_documents("Jane Doe", [document()])
    state.claims.toggle_month("Jane Doe", "March")
    storage.save(CLAIMS_KEY, [])

    state.logout()

    assert state.gate.current is None
    assert storage.load(SESSION_KEY) is None
    assert state.claims.draft_for("Jane Doe").files == []
    assert storage.load(CLAIMS_KEY) == []


def test_theme_defaults_toggles_and_persists(storage):
    state = AppState(storage, FakeEvaluator(), admin_token=ADMIN_TOKEN)
    assert state.theme == "light"

    state.toggle_theme()
    assert storage.load(THEME_KEY) == "dark"
    assert AppState(storage, FakeEvaluator(), admin_token=ADMIN_TOKEN).theme == "dark"


def test_unknown_stored_theme_falls_back_to_light():
    storage = MemoryStorage({THEME_KEY: '"sepia"'})
    assert AppState(storage, FakeEvaluator(), admin_token=ADMIN_TOKEN).theme == "light"


def test_hard_reset_purges_everything(state, storage):
    state.gate.login("employee", "Jane Doe")
    state.set_theme("dark")
    state.claims.add_documents("Jane Doe", [document()])
    storage.save(CLAIMS_KEY, [])

    state.hard_reset()

    assert state.gate.current is None
    assert state.theme == "light"
    assert state.claims.claims == []
    assert state.claims.draft_for("Jane Doe").files == []
    for key in (SESSION_KEY, THEME_KEY, CLAIMS_KEY):
        assert storage.load(key) is None


def test_hard_reset_is_refused_while_a_submission_is_evaluated(state, storage, evaluator):
    jane = state.gate.login("employee", "Jane Doe")
    state.claims.add_documents(jane.name, [document()])
    state.claims.toggle_month(jane.name, "March")

    async def scenario():
        evaluator.hold = asyncio.Event()
        submission = asyncio.create_task(state.claims.submit(jane))
        await asyncio.sleep(0)
        with pytest.raises(ValidationError, match="being evaluated"):
            state.hard_reset()
        evaluator.hold.set()
        return await submission

    claim = asyncio.run(scenario())
    assert [c["id"] for c in storage.load(CLAIMS_KEY)] == [claim.id]

    state.hard_reset()
    assert state.claims.claims == []
    assert storage.load(CLAIMS_KEY) is None
