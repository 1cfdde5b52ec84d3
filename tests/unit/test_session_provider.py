import pytest

from curated_discoveries.core.exceptions import AuthError, ConflictError, ValidationError
from curated_discoveries.modules.auth.schemas import SessionStatus
from curated_discoveries.modules.auth.service import SessionProvider


class TestSignUpValidation:
    """Local checks run before any call to the auth server or the database."""

    @pytest.mark.parametrize("username", ["ab", "a" * 31, "bad name", "bad-name", "bad.name"])
    def test_rejects_bad_usernames(self, session_provider, fake_supabase, username):
        with pytest.raises(ValidationError) as exc:
            session_provider.sign_up("new@example.com", "secret123", "New User", username)
        assert exc.value.field == "username"
        assert fake_supabase.auth.sign_up_calls == []
        assert fake_supabase.calls == []

    @pytest.mark.parametrize("password", ["12345", "a" * 73])
    def test_rejects_bad_passwords(self, session_provider, fake_supabase, password):
        with pytest.raises(ValidationError) as exc:
            session_provider.sign_up("new@example.com", password, "New User", "new_user")
        assert exc.value.field == "password"
        assert fake_supabase.auth.sign_up_calls == []

    def test_normalizes_email_before_remote_call(self, session_provider, fake_supabase):
        session_provider.sign_up(" User@Example.COM ", "secret123", "New User", "New_User")
        sent = fake_supabase.auth.sign_up_calls[0]
        assert sent["email"] == "user@example.com"
        assert sent["options"]["data"] == {"full_name": "New User", "username": "new_user"}


class TestSignUp:
    def test_creates_identity_and_profile(self, session_provider, fake_supabase):
        result = session_provider.sign_up("new@example.com", "secret123", "New User", "new_user")

        assert result.confirmation_required is False
        assert result.profile.username == "new_user"
        assert session_provider.state.status == SessionStatus.AUTHENTICATED
        assert session_provider.user.id == result.user_id
        assert session_provider.profile.id == result.user_id
        rows = fake_supabase.rows("profiles")
        assert [r["id"] for r in rows] == [result.user_id]

    def test_confirmation_pending_leaves_provider_anonymous(self, session_provider, fake_supabase):
        fake_supabase.auth.require_confirmation = True
        result = session_provider.sign_up("new@example.com", "secret123", "New User", "new_user")

        assert result.confirmation_required is True
        assert session_provider.state.status == SessionStatus.ANONYMOUS
        assert session_provider.user is None
        assert len(fake_supabase.rows("profiles")) == 1

    def test_username_taken(self, session_provider, fake_supabase, make_user):
        make_user("taken")
        with pytest.raises(ConflictError) as exc:
            session_provider.sign_up("new@example.com", "secret123", "New User", "Taken")
        assert exc.value.details == {"field": "username"}
        assert fake_supabase.auth.sign_up_calls == []
        assert session_provider.state.status == SessionStatus.ANONYMOUS
        assert session_provider.state.error == exc.value.message

    def test_email_already_registered(self, session_provider, fake_supabase):
        fake_supabase.auth.create_user("dup@example.com")
        with pytest.raises(ConflictError) as exc:
            session_provider.sign_up("dup@example.com", "secret123", "Dup", "dup_user")
        assert exc.value.message == "An account with this email already exists"

    def test_profile_failure_deletes_identity(self, session_provider, fake_supabase):
        fake_supabase.fail_next("profiles", "insert", code="23505")

        with pytest.raises(ConflictError):
            session_provider.sign_up("new@example.com", "secret123", "New User", "new_user")

        deleted = fake_supabase.auth.admin.deleted
        assert len(deleted) == 1
        assert "new@example.com" not in fake_supabase.auth.users
        assert session_provider.user is None
        assert session_provider.state.error == "Username already exists"

    def test_failed_compensation_leaves_identity_for_reconciliation(self, session_provider, fake_supabase):
        fake_supabase.fail_next("profiles", "insert")
        fake_supabase.auth.admin.fail_delete = True

        with pytest.raises(Exception):
            session_provider.sign_up("new@example.com", "secret123", "New User", "new_user")

        assert "new@example.com" in fake_supabase.auth.users
        assert fake_supabase.rows("profiles") == []
        assert session_provider.state.status == SessionStatus.ANONYMOUS

    def test_no_admin_client(self, fake_supabase):
        provider = SessionProvider(fake_supabase)
        assert provider.delete_identity("some-id") is False


class TestSignIn:
    def test_exposes_user_and_profile(self, session_provider, make_user):
        user, _ = make_user("alice", password="secret123")

        state = session_provider.sign_in("  ALICE@example.com ", "secret123")

        assert state.status == SessionStatus.AUTHENTICATED
        assert state.user.id == user.id
        assert state.profile.id == user.id
        assert state.profile.username == "alice"
        assert state.loading is False
        assert state.profile_loading is False

    def test_normalizes_email(self, session_provider, fake_supabase, make_user):
        make_user("alice")
        session_provider.sign_in(" Alice@Example.COM ", "secret123")
        assert fake_supabase.auth.sign_in_calls[0]["email"] == "alice@example.com"

    def test_wrong_password(self, session_provider, make_user):
        make_user("alice")
        with pytest.raises(AuthError) as exc:
            session_provider.sign_in("alice@example.com", "wrong-password")
        assert exc.value.message == "Invalid email or password"
        state = session_provider.state
        assert state.status == SessionStatus.ANONYMOUS
        assert state.loading is False
        assert state.error == "Invalid email or password"

    def test_missing_password(self, session_provider, fake_supabase):
        with pytest.raises(ValidationError):
            session_provider.sign_in("alice@example.com", "")
        assert fake_supabase.auth.sign_in_calls == []

    def test_user_without_profile_row(self, session_provider, fake_supabase):
        fake_supabase.auth.create_user("ghost@example.com", "secret123")
        state = session_provider.sign_in("ghost@example.com", "secret123")
        assert state.user is not None
        assert state.profile is None


class TestSignOut:
    def test_clears_everything(self, session_provider, make_user):
        make_user("alice")
        session_provider.sign_in("alice@example.com", "secret123")

        state = session_provider.sign_out()

        assert state.status == SessionStatus.ANONYMOUS
        assert state.user is None
        assert state.session is None
        assert state.profile is None
        assert state.error is None

    def test_clears_when_already_anonymous(self, session_provider):
        state = session_provider.sign_out()
        assert state.user is None
        assert state.status == SessionStatus.ANONYMOUS

    def test_clears_even_when_remote_fails(self, session_provider, fake_supabase, make_user):
        make_user("alice")
        session_provider.sign_in("alice@example.com", "secret123")
        fake_supabase.auth.fail_sign_out = True

        state = session_provider.sign_out()

        assert state.user is None
        assert state.profile is None
        assert state.error == "Sign out could not be confirmed with the server"

    def test_token_session_is_revoked_by_jwt(self, session_provider, fake_supabase, make_user):
        _, token = make_user("alice")
        session_provider.restore_from_token(token, load_profile=False)

        session_provider.sign_out()

        assert fake_supabase.auth.admin.revoked == [token]
        assert session_provider.user is None

    def test_revoked_token_is_not_served_from_cache(self, session_provider, fake_supabase, make_user):
        _, token = make_user("alice")
        SessionProvider(fake_supabase).restore_from_token(token, load_profile=False)
        session_provider.restore_from_token(token, load_profile=False)

        session_provider.sign_out()

        with pytest.raises(AuthError):
            SessionProvider(fake_supabase).restore_from_token(token, load_profile=False)


class TestRestoreFromToken:
    def test_valid_token(self, session_provider, make_user):
        user, token = make_user("alice")
        state = session_provider.restore_from_token(token)
        assert state.user.id == user.id
        assert state.session.access_token == token
        assert state.profile.username == "alice"

    def test_without_profile(self, session_provider, make_user):
        _, token = make_user("alice")
        state = session_provider.restore_from_token(token, load_profile=False)
        assert state.profile is None

    def test_invalid_token(self, session_provider):
        with pytest.raises(AuthError) as exc:
            session_provider.restore_from_token("not-a-token")
        assert exc.value.message == "Invalid or expired token"
        assert session_provider.state.status == SessionStatus.ANONYMOUS

    def test_lookups_are_cached(self, fake_supabase, make_user):
        user, token = make_user("alice")
        SessionProvider(fake_supabase).restore_from_token(token, load_profile=False)
        # the auth server no longer knows the token; the cached lookup still answers
        fake_supabase.auth.tokens.pop(token)
        state = SessionProvider(fake_supabase).restore_from_token(token, load_profile=False)
        assert state.user.id == user.id


class TestInitialize:
    def test_restores_persisted_session(self, session_provider, fake_supabase, make_user):
        user, _ = make_user("alice")
        fake_supabase.auth.current_session = fake_supabase.auth.issue_session(user)

        state = session_provider.initialize()

        assert state.status == SessionStatus.AUTHENTICATED
        assert state.profile.username == "alice"
        assert len(fake_supabase.auth.listeners) == 1

    def test_no_persisted_session(self, session_provider):
        state = session_provider.initialize()
        assert state.status == SessionStatus.ANONYMOUS
        assert state.loading is False

    def test_subscribes_once(self, session_provider, fake_supabase):
        session_provider.initialize()
        session_provider.initialize()
        assert len(fake_supabase.auth.listeners) == 1

    def test_restore_failure(self, session_provider, fake_supabase, monkeypatch):
        def broken():
            raise RuntimeError("storage corrupted")

        monkeypatch.setattr(fake_supabase.auth, "get_session", broken)
        state = session_provider.initialize()
        assert state.status == SessionStatus.ANONYMOUS
        assert state.error == "Could not restore your session"


class TestAuthEvents:
    def test_signed_in_elsewhere(self, session_provider, fake_supabase, make_user):
        user, _ = make_user("alice")
        session_provider.initialize()

        fake_supabase.auth.emit("SIGNED_IN", fake_supabase.auth.issue_session(user))

        assert session_provider.user.id == user.id
        assert session_provider.profile.username == "alice"

    def test_signed_out_elsewhere(self, session_provider, fake_supabase, make_user):
        make_user("alice")
        session_provider.initialize()
        session_provider.sign_in("alice@example.com", "secret123")

        fake_supabase.auth.emit("SIGNED_OUT", None)

        assert session_provider.user is None
        assert session_provider.profile is None

    def test_token_refresh_keeps_profile_without_refetch(self, session_provider, fake_supabase, make_user):
        user, _ = make_user("alice")
        session_provider.initialize()
        session_provider.sign_in("alice@example.com", "secret123")
        profile = session_provider.profile
        profile_reads = fake_supabase.calls.count(("profiles", "select"))

        refreshed = fake_supabase.auth.issue_session(user)
        fake_supabase.auth.emit("TOKEN_REFRESHED", refreshed)

        assert session_provider.session.access_token == refreshed.access_token
        assert session_provider.profile == profile
        assert fake_supabase.calls.count(("profiles", "select")) == profile_reads

    def test_user_updated_refetches_profile(self, session_provider, fake_supabase, make_user):
        user, _ = make_user("alice")
        session_provider.initialize()
        session_provider.sign_in("alice@example.com", "secret123")
        fake_supabase.rows("profiles")[0]["full_name"] = "Alice Renamed"

        fake_supabase.auth.emit("USER_UPDATED", fake_supabase.auth.issue_session(user))

        assert session_provider.profile.full_name == "Alice Renamed"

    def test_closed_provider_ignores_events(self, session_provider, fake_supabase, make_user):
        user, _ = make_user("alice")
        session_provider.initialize()
        session_provider.close()

        fake_supabase.auth.emit("SIGNED_IN", fake_supabase.auth.issue_session(user))

        assert session_provider.user is None
        assert fake_supabase.auth.listeners == []


class TestSubscribers:
    def test_each_change_is_a_new_snapshot(self, session_provider, make_user):
        make_user("alice")
        seen = []
        session_provider.subscribe(seen.append)

        session_provider.sign_in("alice@example.com", "secret123")

        assert seen[0].status == SessionStatus.LOADING
        assert seen[-1].status == SessionStatus.AUTHENTICATED
        assert len({id(state) for state in seen}) == len(seen)
        assert seen[-1] is session_provider.state

    def test_profile_loading_is_separate_from_session(self, session_provider, make_user):
        make_user("alice")
        seen = []
        session_provider.subscribe(seen.append)

        session_provider.sign_in("alice@example.com", "secret123")

        fetching = [s for s in seen if s.profile_loading]
        assert fetching
        assert all(s.user is not None and s.profile is None for s in fetching)

    def test_unsubscribe(self, session_provider, make_user):
        make_user("alice")
        seen = []
        unsubscribe = session_provider.subscribe(seen.append)
        unsubscribe()

        session_provider.sign_in("alice@example.com", "secret123")

        assert seen == []

    def test_failing_listener_does_not_break_others(self, session_provider, make_user):
        make_user("alice")
        seen = []

        def broken(state):
            raise RuntimeError("listener bug")

        session_provider.subscribe(broken)
        session_provider.subscribe(seen.append)

        state = session_provider.sign_in("alice@example.com", "secret123")

        assert state.is_authenticated
        assert seen


class TestRefreshProfile:
    def test_anonymous(self, session_provider):
        assert session_provider.refresh_profile() is None

    def test_picks_up_changes(self, session_provider, fake_supabase, make_user):
        _, token = make_user("alice")
        session_provider.restore_from_token(token)
        fake_supabase.rows("profiles")[0]["bio"] = "New bio"

        profile = session_provider.refresh_profile()

        assert profile.bio == "New bio"

    def test_fetch_error_keeps_previous_profile(self, session_provider, fake_supabase, make_user):
        _, token = make_user("alice")
        session_provider.restore_from_token(token)
        fake_supabase.fail_next("profiles", "select")

        profile = session_provider.refresh_profile()

        assert profile.username == "alice"
        assert session_provider.profile_loading is False
