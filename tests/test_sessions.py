"""
Request-scoped session state.
"""

import pytest

from portcullis.sessions import Session, SessionID, SessionStore, hash_session_id


class TestSessionID:

    def test_generate(self):
        assert str(SessionID()).startswith("sess_")

    def test_unique(self):
        assert len({str(SessionID()) for _ in range(50)}) == 50

    def test_from_string(self):
        sid = SessionID()
        assert SessionID.from_string(str(sid)) == sid

    def test_from_string_invalid(self):
        with pytest.raises(ValueError):
            SessionID.from_string("nope")

    def test_fingerprint_hides_id(self):
        sid = SessionID()
        assert str(sid) not in sid.fingerprint()
        assert sid.fingerprint().startswith("sha256:")

    def test_fingerprint_matches_hashed_string(self):
        sid = SessionID()
        assert sid.fingerprint() == hash_session_id(str(sid))
        assert len(hash_session_id("sess_x")) == len("sha256:") + 16


class TestSession:

    def test_is_session_store(self):
        assert isinstance(Session(), SessionStore)

    def test_data_operations(self):
        session = Session()
        session.put("auth_web", 42)
        assert session.get("auth_web") == 42
        assert session.has("auth_web")
        assert "auth_web" in session
        assert session.is_dirty

        session.forget("auth_web")
        assert session.get("auth_web") is None
        assert session.all() == {}

    def test_forget_missing_key(self):
        session = Session()
        session.forget("missing")
        assert session.is_dirty is False

    def test_regenerate_keeps_data(self):
        session = Session(data={"cart": 3})
        old = session.session_id

        session.regenerate()

        assert session.session_id != old
        assert session.get("cart") == 3
        assert session.regenerated is True
        assert str(session.initial_id) == old

    def test_all_is_copy(self):
        session = Session(data={"a": 1})
        session.all()["a"] = 2
        assert session.get("a") == 1

    def test_mark_clean(self):
        session = Session()
        session.put("a", 1)
        session.mark_clean()
        assert session.is_dirty is False
