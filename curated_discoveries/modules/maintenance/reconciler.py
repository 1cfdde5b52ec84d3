"""
Cleanup of auth identities that never got a profile row.

Sign-up creates the identity first and the profile second. When the profile
insert fails and the compensating delete fails as well, the identity is left
behind. This job finds identities older than a grace period with no matching
profiles row and deletes them. It is safe to re-run: each pass starts from
the current state.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from pydantic import BaseModel
from supabase import Client

from curated_discoveries.config import settings
from curated_discoveries.database.supabase_client import get_admin_supabase

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class ReconcileReport(BaseModel):
    scanned: int = 0
    orphaned: int = 0
    deleted: int = 0
    failed: int = 0


def _created_at(user: Any) -> Optional[datetime]:
    value = getattr(user, "created_at", None)
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def find_orphaned_identities(
    admin_client: Client,
    grace_minutes: int,
    now: Optional[datetime] = None,
    per_page: int = PAGE_SIZE,
) -> tuple:
    """Return (scanned count, ids of identities past the grace period without a profile)"""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=grace_minutes)
    scanned = 0
    orphans: List[str] = []
    page = 1
    while True:
        users = admin_client.auth.admin.list_users(page=page, per_page=per_page) or []
        scanned += len(users)
        candidates = [str(u.id) for u in users if (_created_at(u) or cutoff) < cutoff]
        if candidates:
            result = admin_client.table("profiles")\
                .select("id")\
                .in_("id", candidates)\
                .execute()
            with_profile = {row["id"] for row in result.data or []}
            orphans.extend(user_id for user_id in candidates if user_id not in with_profile)
        if len(users) < per_page:
            break
        page += 1
    return scanned, orphans


def reconcile_orphaned_identities(
    admin_client: Optional[Client] = None,
    grace_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ReconcileReport:
    """Delete identities with no profile row. Individual delete failures are logged and skipped."""
    admin_client = admin_client or get_admin_supabase()
    if admin_client is None:
        logger.warning("Reconciliation skipped: no service role key configured")
        return ReconcileReport()
    if grace_minutes is None:
        grace_minutes = settings.orphan_grace_minutes

    # scan everything before deleting so paging is not shifted under us
    scanned, orphans = find_orphaned_identities(admin_client, grace_minutes, now=now)
    report = ReconcileReport(scanned=scanned, orphaned=len(orphans))
    for user_id in orphans:
        try:
            admin_client.auth.admin.delete_user(user_id)
            report.deleted += 1
            logger.info(f"Deleted orphaned identity {user_id}")
        except Exception as e:
            report.failed += 1
            logger.error(f"Failed to delete orphaned identity {user_id}: {str(e)}")

    if report.orphaned:
        logger.info(
            f"Reconciliation finished: scanned={report.scanned} orphaned={report.orphaned} "
            f"deleted={report.deleted} failed={report.failed}"
        )
    else:
        logger.debug(f"Reconciliation finished: scanned={report.scanned}, no orphaned identities")
    return report


async def reconcile_loop(interval_seconds: Optional[int] = None):
    """Background task that periodically removes orphaned identities"""
    interval = interval_seconds or settings.reconcile_interval_seconds
    while True:
        try:
            await asyncio.to_thread(reconcile_orphaned_identities)
        except Exception as e:
            logger.error(f"Error in reconciliation loop: {str(e)}")

        await asyncio.sleep(interval)
