import pytest

from curated_discoveries.core.exceptions import ConflictError, NotFoundError, ValidationError
from curated_discoveries.modules.profiles.schemas import ProfileUpdate
from curated_discoveries.modules.profiles.service import ProfileService


@pytest.fixture
def service(fake_supabase):
    return ProfileService(fake_supabase)


class TestLookup:
    def test_find_missing_returns_none(self, service):
        assert service.find_profile("nobody") is None

    def test_get_missing_raises(self, service):
        with pytest.raises(NotFoundError) as exc:
            service.get_profile("nobody")
        assert exc.value.message == "Profile not found"

    def test_by_username_is_case_insensitive(self, service, make_user):
        user, _ = make_user("alice")
        assert service.get_profile_by_username(" Alice ").id == user.id

    def test_username_taken_excludes_self(self, service, make_user):
        user, _ = make_user("alice")
        assert service.username_taken("alice") is True
        assert service.username_taken("alice", exclude_user_id=user.id) is False
        assert service.username_taken("bob") is False


class TestUpdate:
    def test_updates_and_normalizes(self, service, make_user):
        user, _ = make_user("alice")
        profile = service.update_profile(user.id, ProfileUpdate(
            full_name="  Alice Liddell ",
            username="Alice_L",
            bio="  Reader of books  ",
            website="https://alice.example",
        ))
        assert profile.full_name == "Alice Liddell"
        assert profile.username == "alice_l"
        assert profile.bio == "Reader of books"
        assert profile.website == "https://alice.example"

    def test_clearing_bio(self, service, make_user):
        user, _ = make_user("alice", bio="old")
        assert service.update_profile(user.id, ProfileUpdate(bio="")).bio is None

    def test_keeping_own_username(self, service, make_user):
        user, _ = make_user("alice")
        assert service.update_profile(user.id, ProfileUpdate(username="alice")).username == "alice"

    def test_username_conflict(self, service, fake_supabase, make_user):
        user, _ = make_user("alice")
        make_user("bob")
        with pytest.raises(ConflictError) as exc:
            service.update_profile(user.id, ProfileUpdate(username="bob"))
        assert exc.value.message == "This username is already taken"
        assert fake_supabase.rows("profiles")[0]["username"] == "alice"

    def test_invalid_website(self, service, make_user):
        user, _ = make_user("alice")
        with pytest.raises(ValidationError) as exc:
            service.update_profile(user.id, ProfileUpdate(website="alice.example"))
        assert exc.value.field == "website"

    def test_missing_profile(self, service):
        with pytest.raises(NotFoundError):
            service.update_profile("nobody", ProfileUpdate(full_name="Ghost"))


class TestFollowLists:
    def test_followers_and_following(self, service, fake_supabase, make_user):
        alice, _ = make_user("alice")
        bob, _ = make_user("bob")
        carol, _ = make_user("carol")
        follows = fake_supabase.table("follows")
        follows.insert({"follower_id": bob.id, "following_id": alice.id}).execute()
        fake_supabase.table("follows").insert({"follower_id": carol.id, "following_id": alice.id}).execute()
        fake_supabase.table("follows").insert({"follower_id": alice.id, "following_id": carol.id}).execute()

        followers = service.list_followers("alice")
        assert [p.username for p in followers] == ["carol", "bob"]
        assert [p.username for p in service.list_following("alice")] == ["carol"]
        assert service.list_following("bob")[0].username == "alice"
        assert service.list_followers("bob") == []

    def test_unknown_user(self, service):
        with pytest.raises(NotFoundError):
            service.list_followers("nobody")

    def test_summaries(self, service, make_user):
        alice, _ = make_user("alice")
        summaries = service.get_summaries([alice.id, alice.id, None])
        assert list(summaries) == [alice.id]
        assert summaries[alice.id].username == "alice"
        assert service.get_summaries([]) == {}
