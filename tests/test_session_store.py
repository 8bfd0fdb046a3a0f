import pytest

from models.session_models import ClickEvent, SessionPhase
from services.session_store import SessionStore
from tests.conftest import make_png
from utils.errors import SessionBusy, SessionNotFound


def _event(x=10.0, y=20.0):
    return ClickEvent(x=x, y=y, description=f"User clicked at position ({x:g}, {y:g})", image_with_dot=make_png())


class TestSessionStore:
    def test_phases(self):
        store = SessionStore()
        session = store.create("a page", make_png(), [])
        sid = session.session_id

        assert store.phase(sid) == SessionPhase.READY
        store.begin(sid)
        assert store.phase(sid) == SessionPhase.PENDING
        store.finish(sid)
        assert store.phase(sid) == SessionPhase.READY
        store.reset(sid)
        assert store.phase(sid) == SessionPhase.EMPTY

    def test_begin_twice_is_busy(self):
        store = SessionStore()
        sid = store.create("a page", make_png(), []).session_id
        store.begin(sid)
        with pytest.raises(SessionBusy):
            store.begin(sid)

    def test_missing_session(self):
        with pytest.raises(SessionNotFound) as info:
            SessionStore().get("nope")
        assert str(info.value) == "Session nope not found"

    def test_apply_click_edit_commits_everything(self):
        store = SessionStore()
        session = store.create("a page", make_png(), [])
        new_image = make_png(color=(1, 2, 3))

        store.apply_click_edit(session, _event(), new_image, [])

        assert session.current_image == new_image
        assert len(session.click_history) == 1
        assert session.updated_at >= session.created_at

    def test_apply_after_reset_is_refused(self):
        store = SessionStore()
        session = store.create("a page", make_png(), [])
        store.reset(session.session_id)

        with pytest.raises(SessionNotFound):
            store.apply_click_edit(session, _event(), make_png(), [])
        assert session.click_history == []

    def test_history_summary_is_recent_clicks(self):
        store = SessionStore()
        session = store.create("a page", make_png(), [])
        for i in range(7):
            store.apply_click_edit(session, _event(x=float(i)), make_png(), [])

        summary = store.history_summary(session.session_id, limit=2)
        assert summary.splitlines() == ["User clicked at position (5, 20)", "User clicked at position (6, 20)"]
