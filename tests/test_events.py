"""
Event emitter.
"""

from portcullis.events import SESSION_GUARD_EVENTS, Emitter


class TestEmitter:

    def test_on_emit(self):
        emitter = Emitter()
        seen = []
        emitter.on("authentication_failed", seen.append)

        emitter.emit("authentication_failed", {"guard_name": "web"})
        emitter.emit("authentication_succeeded", {"guard_name": "web"})

        assert seen == [{"guard_name": "web"}]

    def test_on_any(self):
        emitter = Emitter()
        seen = []
        emitter.on_any(lambda name, payload: seen.append(name))

        emitter.emit("login_attempted", {})
        emitter.emit("logged_out", {})

        assert seen == ["login_attempted", "logged_out"]

    def test_off(self):
        emitter = Emitter()
        seen = []
        emitter.on("x", seen.append)
        emitter.off("x", seen.append)
        emitter.off("x", print)

        emitter.emit("x", {})
        assert seen == []
        assert emitter.has_listeners("x") is False

    def test_handler_error_is_logged(self, caplog):
        emitter = Emitter()
        seen = []

        def boom(payload):
            raise RuntimeError("boom")

        emitter.on("x", boom)
        emitter.on("x", seen.append)

        with caplog.at_level("ERROR", logger="portcullis.events"):
            emitter.emit("x", {"n": 1})

        assert seen == [{"n": 1}]
        assert "boom" in caplog.text

    def test_known_events(self):
        assert "authentication_attempted" in SESSION_GUARD_EVENTS
        assert "authentication_succeeded" in SESSION_GUARD_EVENTS
        assert "authentication_failed" in SESSION_GUARD_EVENTS
