from tr4ck.backend.auth import (
    INVALID_MESSAGE,
    LOCKED_MESSAGE,
    AuthGate,
    AuthState,
    FlagStore,
    credentials_match,
)


class Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_credentials_match_empty_expected_matches_anything():
    assert credentials_match("", "", "x", "y")
    assert credentials_match("ana", "", "ana", "whatever")
    assert credentials_match("", "pw", "anyone", "pw")
    assert not credentials_match("ana", "pw", "ana", "nope")


def test_no_credentials_starts_authenticated():
    gate = AuthGate()
    assert not gate.required
    assert gate.state is AuthState.AUTHENTICATED
    gate.log_out()
    assert gate.is_authenticated


def test_five_failures_lock_for_thirty_seconds():
    clock = Clock()
    gate = AuthGate("ana", "pw", clock=clock)
    for _ in range(4):
        result = gate.submit("ana", "wrong")
        assert result.message == INVALID_MESSAGE
        assert result.state is AuthState.UNAUTHENTICATED
    result = gate.submit("ana", "wrong")
    assert result.state is AuthState.LOCKED_OUT
    assert result.message == LOCKED_MESSAGE
    assert gate.lock_until == 1030.0
    assert gate.remaining_seconds() == 30
    assert gate.failed_attempts == 0


def test_submissions_during_lock_are_not_counted():
    clock = Clock()
    gate = AuthGate("ana", "pw", clock=clock)
    for _ in range(5):
        gate.submit("ana", "wrong")
    clock.now += 10
    for _ in range(3):
        assert gate.submit("ana", "wrong").state is AuthState.LOCKED_OUT
    assert gate.submit("ana", "pw").state is AuthState.LOCKED_OUT
    assert gate.failed_attempts == 0


def test_correct_submission_after_lock_expires():
    clock = Clock()
    gate = AuthGate("ana", "pw", clock=clock)
    for _ in range(5):
        gate.submit("ana", "wrong")
    clock.now += 30
    result = gate.submit("ana", "pw")
    assert result.ok
    assert gate.state is AuthState.AUTHENTICATED
    assert gate.lock_until == 0


def test_counter_resets_after_lock_expiry():
    clock = Clock()
    gate = AuthGate("ana", "pw", clock=clock)
    for _ in range(5):
        gate.submit("ana", "wrong")
    clock.now += 31
    for _ in range(4):
        assert gate.submit("ana", "wrong").state is AuthState.UNAUTHENTICATED


def test_authenticated_flag_and_lock_persist(tmp_path):
    path = str(tmp_path / "flags" / "auth.json")
    clock = Clock()
    gate = AuthGate("", "pw", FlagStore(path), clock=clock)
    assert gate.submit("", "pw").ok
    assert AuthGate("", "pw", FlagStore(path), clock=clock).is_authenticated

    gate.log_out()
    again = AuthGate("", "pw", FlagStore(path), clock=clock)
    assert again.state is AuthState.UNAUTHENTICATED
    for _ in range(5):
        again.submit("", "bad")
    restarted = AuthGate("", "pw", FlagStore(path), clock=clock)
    assert restarted.state is AuthState.LOCKED_OUT


def test_flag_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text("{not json", encoding="utf-8")
    store = FlagStore(str(path))
    assert store.get("tr4ck-auth-v1") is None
    store.set("k", 1)
    assert store.get("k") == 1
