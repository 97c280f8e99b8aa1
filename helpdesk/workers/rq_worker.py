# helpdesk/workers/rq_worker.py
import json
import hmac, hashlib
import logging
import os
from typing import Any, Callable, Mapping

import redis
import requests
from rq import Queue, Worker

from helpdesk.core.config import settings
from helpdesk.core.logging import REQUEST_ID_HEADER, bind_request_id, reset_request_id, setup_logging

logger = logging.getLogger("worker.notifications")


def _sign(payload: Mapping[str, Any]) -> str | None:
    if not settings.webhook_secret:
        return None
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return hmac.new(settings.webhook_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _post(event_type: str, payload: Mapping[str, Any]) -> None:
    url = settings.webhook_url
    if not url:
        logger.debug("webhook_url_missing", extra={"event_type": event_type})
        return
    headers = {"Content-Type": "application/json", "X-Helpdesk-Event": event_type}
    if payload.get("request_id"):
        headers[REQUEST_ID_HEADER] = payload["request_id"]
    sig = _sign(payload)
    if sig:
        headers["X-Helpdesk-Signature"] = f"sha256={sig}"
    r = requests.post(url, json=payload, headers=headers, timeout=10)
    logger.info("webhook_sent", extra={"event_type": event_type, "status": r.status_code})


def send_mail_mock(to: str, subject: str, body: str) -> None:
    logger.info("SEND_MAIL", extra={"to": to, "subject": subject, "body_len": len(body)})


def _ticket(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    return payload.get("ticket") or {}


def on_ticket_created(payload: Mapping[str, Any]) -> None:
    t = _ticket(payload)
    logger.info("ticket_created", extra={"ticket_id": t.get("id")})
    if t.get("submitter_email"):
        send_mail_mock(t["submitter_email"], f"Ticket #{t.get('id')} created", "Your request was registered.")


def on_status_changed(payload: Mapping[str, Any]) -> None:
    t = _ticket(payload)
    logger.info("status_changed", extra={"ticket_id": t.get("id"), "from": payload.get("from"), "to": payload.get("to")})


def on_ticket_assigned(payload: Mapping[str, Any]) -> None:
    t = _ticket(payload)
    logger.info("ticket_assigned", extra={"ticket_id": t.get("id"), "assignee_id": t.get("assignee_id")})


def on_ticket_escalated(payload: Mapping[str, Any]) -> None:
    t = _ticket(payload)
    logger.info("ticket_escalated", extra={"ticket_id": t.get("id")})


def on_ticket_resolved(payload: Mapping[str, Any]) -> None:
    t = _ticket(payload)
    logger.info("ticket_resolved", extra={"ticket_id": t.get("id")})
    if t.get("submitter_email"):
        send_mail_mock(t["submitter_email"], f"Ticket #{t.get('id')} resolved", "Your request was resolved.")


def on_comment_added(payload: Mapping[str, Any]) -> None:
    t = _ticket(payload)
    logger.info("comment_added", extra={"ticket_id": t.get("id"), "comment_id": payload.get("comment_id")})


def on_ticket_deleted(payload: Mapping[str, Any]) -> None:
    logger.info("ticket_deleted", extra={"ticket_id": _ticket(payload).get("id")})


EVENT_HANDLERS: dict[str, Callable[[Mapping[str, Any]], None]] = {
    "ticket_created": on_ticket_created,
    "status_changed": on_status_changed,
    "ticket_assigned": on_ticket_assigned,
    "ticket_escalated": on_ticket_escalated,
    "ticket_resolved": on_ticket_resolved,
    "comment_added": on_comment_added,
    "ticket_deleted": on_ticket_deleted,
}


def handle_event(event_type: str, payload: Mapping[str, Any] | None = None) -> None:
    handler = EVENT_HANDLERS.get(event_type)
    if not handler:
        logger.warning("unknown_event", extra={"event_type": event_type})
        return
    payload = payload or {}
    # логи воркера несуть id запиту, який породив подію
    token = bind_request_id(payload.get("request_id"))
    try:
        handler(payload)
        _post(event_type, payload)
    finally:
        reset_request_id(token)


def main() -> None:
    setup_logging(settings.log_level)
    queue_name = settings.notifications_queue
    logger.info("worker_starting", extra={"queue": queue_name, "redis": settings.redis_url})
    conn = redis.from_url(settings.redis_url)
    queue = Queue(queue_name, connection=conn)
    worker = Worker([queue], connection=conn, name=os.getenv("WORKER_NAME", "notifications-worker"))
    worker.work(logging_level="INFO")


if __name__ == "__main__":
    main()
