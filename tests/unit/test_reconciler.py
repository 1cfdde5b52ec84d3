import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from curated_discoveries.modules.maintenance import reconciler
from curated_discoveries.modules.maintenance.reconciler import (
    find_orphaned_identities, reconcile_orphaned_identities
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def identities(fake_supabase):
    """One complete account, one old orphan, one orphan still inside the grace period."""
    auth = fake_supabase.auth
    complete = auth.create_user("complete@example.com", created_at=NOW - timedelta(days=2))
    fake_supabase.add_profile(complete, "complete")
    old_orphan = auth.create_user("orphan@example.com", created_at=(NOW - timedelta(hours=2)).isoformat())
    fresh = auth.create_user("fresh@example.com", created_at=NOW - timedelta(minutes=5))
    return complete, old_orphan, fresh


class TestFindOrphans:
    def test_only_old_identities_without_profile(self, fake_supabase, identities):
        _, old_orphan, _ = identities
        scanned, orphans = find_orphaned_identities(fake_supabase, grace_minutes=30, now=NOW)
        assert scanned == 3
        assert orphans == [old_orphan.id]

    def test_pages_through_all_users(self, fake_supabase, identities):
        scanned, orphans = find_orphaned_identities(fake_supabase, grace_minutes=30, now=NOW, per_page=1)
        assert scanned == 3
        assert orphans == [identities[1].id]

    def test_naive_timestamps_are_utc(self, fake_supabase):
        user = fake_supabase.auth.create_user("naive@example.com", created_at=datetime(2024, 6, 1, 10, 0))
        _, orphans = find_orphaned_identities(fake_supabase, grace_minutes=30, now=NOW)
        assert orphans == [user.id]


class TestReconcile:
    def test_deletes_orphans(self, fake_supabase, identities):
        report = reconcile_orphaned_identities(fake_supabase, grace_minutes=30, now=NOW)

        assert report.scanned == 3
        assert report.orphaned == 1
        assert report.deleted == 1
        assert report.failed == 0
        assert "orphan@example.com" not in fake_supabase.auth.users
        assert "fresh@example.com" in fake_supabase.auth.users
        assert "complete@example.com" in fake_supabase.auth.users

    def test_rerun_finds_nothing(self, fake_supabase, identities):
        reconcile_orphaned_identities(fake_supabase, grace_minutes=30, now=NOW)
        report = reconcile_orphaned_identities(fake_supabase, grace_minutes=30, now=NOW)
        assert report.orphaned == 0

    def test_delete_failures_are_counted(self, fake_supabase, identities):
        fake_supabase.auth.admin.fail_delete = True
        report = reconcile_orphaned_identities(fake_supabase, grace_minutes=30, now=NOW)
        assert report.deleted == 0
        assert report.failed == 1

    def test_skipped_without_service_client(self, monkeypatch):
        monkeypatch.setattr(reconciler, "get_admin_supabase", lambda: None)
        report = reconcile_orphaned_identities()
        assert report.scanned == 0
        assert report.deleted == 0


class TestLoop:
    def test_keeps_running_after_errors(self, monkeypatch):
        class Stop(Exception):
            pass

        runs = []

        def flaky():
            runs.append(1)
            raise RuntimeError("admin API down")

        async def stop_after_two(_interval):
            if len(runs) >= 2:
                raise Stop()

        monkeypatch.setattr(reconciler, "reconcile_orphaned_identities", flaky)
        monkeypatch.setattr(reconciler.asyncio, "sleep", stop_after_two)

        with pytest.raises(Stop):
            asyncio.run(reconciler.reconcile_loop(interval_seconds=1))
        assert len(runs) == 2
