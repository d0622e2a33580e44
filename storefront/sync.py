# storefront/sync.py
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .core import UserEventData, _profile_from_event
from .database import Database

# Handlers for identity-provider user lifecycle events. The sender does not
# wait on the outcome, so failures are reported to the monitor, never raised.

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    event: str
    user_id: str
    ok: bool
    message: str


class SyncMonitor:
    def __init__(self):
        self.counts: Counter = Counter()

    def record(self, result: SyncResult) -> SyncResult:
        self.counts[(result.event, "ok" if result.ok else "failed")] += 1
        if result.ok:
            logger.info("%s %s: %s", result.event, result.user_id, result.message)
        else:
            logger.error("%s %s failed: %s", result.event, result.user_id, result.message)
        return result


def sync_user_created(db: Database, data: UserEventData) -> SyncResult:
    # upsert: a replayed "created" event must not produce a second user
    db.upsert_user(data.id, _profile_from_event(data))
    return SyncResult("user.created", data.id, True, "user stored")


def sync_user_updated(db: Database, data: UserEventData) -> SyncResult:
    if db.update_user(data.id, _profile_from_event(data)) is None:
        return SyncResult("user.updated", data.id, False, "user not found")
    return SyncResult("user.updated", data.id, True, "user updated")


def sync_user_deleted(db: Database, data: UserEventData) -> SyncResult:
    if not db.delete_user(data.id):
        return SyncResult("user.deleted", data.id, False, "user not found")
    return SyncResult("user.deleted", data.id, True, "user deleted")


HANDLERS: Dict[str, Callable[[Database, UserEventData], SyncResult]] = {
    "user.created": sync_user_created,
    "user.updated": sync_user_updated,
    "user.deleted": sync_user_deleted,
}


def handle_identity_event(db: Database, monitor: SyncMonitor, event_type: str,
                          payload: dict) -> Optional[SyncResult]:
    """Apply one webhook event. Returns None for event types we do not sync."""
    event_type = event_type.removeprefix("clerk/")
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.debug("Ignoring identity event %s", event_type)
        return None

    user_id = str(payload.get("id", "")) if isinstance(payload, dict) else ""
    try:
        data = UserEventData.model_validate(payload)
        result = handler(db, data)
    except Exception as exc:
        result = SyncResult(event_type, user_id, False, str(exc) or exc.__class__.__name__)
    return monitor.record(result)
