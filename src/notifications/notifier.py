"""Notifier — fire-and-forget emails and activity-log entries.

Callers hand over a template name and a context and return immediately;
rendering, delivery and the activity-log write run on a background
executor. Nothing raised while notifying ever reaches the caller.
"""

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from uuid import uuid4

import structlog

from notifications.channel.email_port import EmailMessage, EmailPort
from notifications.templates import get_template
from shared.clock import utc_now
from shared.config import EmailSettings
from storage.port import Store, Table

logger = structlog.get_logger(__name__)


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class Notifier:
    def __init__(
        self,
        email: EmailPort,
        store: Store,
        settings: EmailSettings,
        executor: Executor | None = None,
    ) -> None:
        self.email = email
        self.store = store
        self.settings = settings
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="notifier")

    def _submit(self, fn, *args) -> None:
        try:
            self.executor.submit(self._guarded, fn, *args)
        except RuntimeError as exc:
            # executor already shut down
            logger.warning("notification_dropped", task=fn.__name__, error=str(exc))

    @staticmethod
    def _guarded(fn, *args) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("notification_failed", task=fn.__name__)

    # -------------------------------------------------------------------
    # Email
    # -------------------------------------------------------------------
    def send_email(self, template: str, recipient: str | None, context: dict) -> None:
        if not recipient:
            logger.warning("email_skipped_no_recipient", template=template)
            return
        self._submit(self._deliver, template, recipient, context)

    def notify_admin(self, template: str, context: dict) -> None:
        if not self.settings.admin_email:
            logger.warning("admin_email_not_configured", template=template)
            return
        self.send_email(template, self.settings.admin_email, context)

    def _deliver(self, template: str, recipient: str, context: dict) -> None:
        content = get_template(template).render(context)
        receipt = self.email.send(
            EmailMessage(to=recipient, subject=content["subject"], body=content["body"], template=template)
        )
        if receipt.sent:
            logger.info("email_sent", template=template, message_id=receipt.message_id)
        else:
            logger.warning("email_failed", template=template, error=receipt.error)

    # -------------------------------------------------------------------
    # Activity log
    # -------------------------------------------------------------------
    def log_activity(
        self,
        actor,
        action: str,
        entity_type: str,
        entity_id: str,
        details: dict | None = None,
    ) -> None:
        actor_id = getattr(actor, "id", None)
        if not (actor_id and action and entity_type and entity_id):
            logger.warning("activity_log_missing_fields", action=action, entity_type=entity_type, entity_id=entity_id)
            return
        entry = {
            "id": str(uuid4()),
            "userId": actor_id,
            "userEmail": getattr(actor, "email", None),
            "userName": getattr(actor, "name", None),
            "action": action,
            "entityType": entity_type,
            "entityId": entity_id,
            "details": details or {},
            "createdAt": utc_now(),
        }
        self._submit(self._write_activity, entry)

    def _write_activity(self, entry: dict) -> None:
        self.store.put(Table.ACTIVITY_LOG, entry)
        logger.debug("activity_logged", action=entry["action"], entity_id=entry["entityId"])


_notifier: Notifier | None = None
_lock = threading.Lock()


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        with _lock:
            if _notifier is None:
                from notifications.channel import get_email_adapter
                from shared.config import get_settings
                from storage import get_store

                _notifier = Notifier(get_email_adapter(), get_store(), get_settings().email)
    return _notifier


def set_notifier(notifier: Notifier) -> None:
    global _notifier
    _notifier = notifier


def reset_notifier() -> None:
    global _notifier
    _notifier = None
