# helpdesk/services/notifications.py
import logging
from typing import Any, Mapping

import redis
from rq import Queue, Retry

from helpdesk.core.config import settings
from helpdesk.core.logging import current_request_id
from helpdesk.db.models import Ticket, User

log = logging.getLogger(__name__)

_queue: Queue | None = None


def _get_queue() -> Queue:
    global _queue
    if _queue is None:
        _queue = Queue(settings.notifications_queue, connection=redis.from_url(settings.redis_url))
    return _queue


def enqueue(event_type: str, payload: Mapping[str, Any]) -> str | None:
    """
    Кладемо подію в чергу: воркер викликає handle_event.
    Повертає job.id або None (вимкнено / помилка), HTTP-запит не валимо.
    """
    if not settings.notifications_enabled:
        return None

    try:
        job = _get_queue().enqueue(
            "helpdesk.workers.rq_worker.handle_event",
            event_type,
            dict(payload),
            job_timeout=60,
            retry=Retry(max=3, interval=[5, 15, 30]),
        )
        return getattr(job, "id", None)
    except (redis.RedisError, OSError) as e:
        log.exception("Failed to enqueue event '%s': %s", event_type, e)
        return None


def actor_payload(u: User) -> dict[str, Any]:
    return {
        "id": u.id,
        "email": u.email,
        "role": u.role.value,
    }


def ticket_payload(t: Ticket) -> dict[str, Any]:
    return {
        "id": t.id,
        "title": t.title,
        "status": t.status.value,
        "priority": t.priority.value,
        "category": t.category.value,
        "support_level": t.support_level.value if t.support_level else None,
        "submitter_id": t.submitter_id,
        "submitter_email": t.submitter.email if t.submitter else None,
        "assignee_id": t.assignee_id,
    }


def notify(event_type: str, ticket: Ticket, actor: User, **extra: Any) -> str | None:
    payload = {
        "ticket": ticket_payload(ticket),
        "actor": actor_payload(actor),
        "request_id": current_request_id(),
    }
    payload.update(extra)
    return enqueue(event_type, payload)
