"""Authentication event publishing.

Events are written to the log; nothing else consumes them yet.
"""

import enum
import logging
from datetime import datetime

from vatofotsy_api.models.base import utc_now

logger = logging.getLogger(__name__)


class AuthEvent(str, enum.Enum):
    USER_LOGGED_IN = "user.logged_in"
    USER_LOGGED_OUT = "user.logged_out"
    PASSWORD_CHANGED = "user.password_changed"


def publish_auth_event(
    event: AuthEvent, user_id: str, occurred_at: datetime | None = None
) -> None:
    occurred_at = occurred_at or utc_now()
    logger.info(
        "Auth event %s for user %s at %s", event.value, user_id, occurred_at.isoformat()
    )
