from agencyops.services.session import SessionManager, load_session, profile_from_provider, session_file_listener


class FakeProvider:
    def __init__(self, user=None) -> None:
        self.user = user or {"id": "u1", "email": "mia@agency.test", "full_name": "Mia Lim"}
        self.signed_out = False

    def sign_in(self, email, password):
        return {"access_token": "tok", "expires_at": "2026-02-16T13:00:00+00:00", "user": self.user}

    def sign_out(self):
        self.signed_out = True


def test_profile_defaults() -> None:
    profile = profile_from_provider({"email": "a@b.test", "first_name": "Ana"})
    assert profile.full_name == "Ana"
    assert profile.role == "member"

    assert profile_from_provider({}).full_name == "User"
    assert profile_from_provider({"public_metadata": {"role": "admin"}}).role == "admin"
    assert profile_from_provider({"public_metadata": {"role": "owner"}}).role == "member"


def test_sign_in_sets_session_and_notifies() -> None:
    manager = SessionManager(FakeProvider())
    seen = []
    manager.subscribe(seen.append)

    assert manager.current_session() is None
    session = manager.sign_in("mia@agency.test", "secret")

    assert manager.current_session() is session
    assert session.user_id == "u1"
    assert manager.profile.full_name == "Mia Lim"
    assert seen == [session]


def test_sign_out_clears_session_and_unsubscribe_stops_events() -> None:
    provider = FakeProvider()
    manager = SessionManager(provider)
    seen = []
    unsubscribe = manager.subscribe(seen.append)
    manager.sign_in("mia@agency.test", "secret")

    unsubscribe()
    manager.sign_out()

    assert provider.signed_out
    assert manager.current_session() is None
    assert len(seen) == 1


def test_has_role_accepts_one_or_many() -> None:
    manager = SessionManager(FakeProvider({"id": "u1", "email": "x", "public_metadata": {"role": "manager"}}))
    assert manager.has_role("manager") is False

    manager.sign_in("x", "y")

    assert manager.has_role("manager")
    assert manager.has_role(["admin", "manager"])
    assert not manager.has_role("admin")


def test_session_file_follows_sign_in_and_sign_out(tmp_path) -> None:
    path = tmp_path / "data" / "session.json"
    manager = SessionManager(FakeProvider())
    manager.subscribe(session_file_listener(path))

    session = manager.sign_in("mia@agency.test", "secret")
    assert load_session(path) == session

    restored = SessionManager(FakeProvider())
    restored.restore(load_session(path))
    assert restored.profile.full_name == "Mia Lim"

    manager.sign_out()
    assert not path.exists()
    assert load_session(path) is None


def test_unreadable_session_file_is_ignored(tmp_path, caplog) -> None:
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_session(path) is None
    assert "Ignoring unreadable session file" in caplog.text
