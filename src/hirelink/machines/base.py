"""Plumbing shared by the four state machines."""

from typing import Any, Dict, List, Optional

from hirelink.config import settings
from hirelink.core.errors import ValidationError
from hirelink.notifications import NotificationDispatcher, NotificationEvent
from hirelink.storage.database import Database
from hirelink.utils.logging import get_logger, log_transition


class StateMachine:
    """Holds the database, the notification dispatcher and a bound logger."""

    entity: str = "record"

    def __init__(self, database: Database, notifications: Optional[NotificationDispatcher] = None):
        self.database = database
        self.notifications = notifications or NotificationDispatcher()
        self.logger = get_logger(self.__class__.__module__).bind(component=self.entity)

    def _log_transition(self, entity_id: str, previous: Any, current: Any, **kwargs: Any) -> None:
        self.logger.info(
            f"{self.entity} transition",
            **log_transition(self.entity, entity_id, previous, current, **kwargs),
        )

    def _notify(
        self,
        kind: str,
        entity_id: str,
        recipients: List[str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Publish after commit; never raises."""
        self.notifications.publish(
            NotificationEvent(
                kind=f"{self.entity}.{kind}",
                entity_type=self.entity,
                entity_id=entity_id,
                recipients=[r for r in recipients if r],
                payload=payload or {},
            )
        )


def clean_text(value: Optional[str], field: str, max_length: Optional[int] = None) -> Optional[str]:
    """Strip free text; blank becomes None; enforce an optional length limit."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValidationError(field, f"must be at most {max_length} characters")
    return value


def clean_reason(reason: Optional[str]) -> Optional[str]:
    return clean_text(reason, "reason", settings.reason_max_length)
