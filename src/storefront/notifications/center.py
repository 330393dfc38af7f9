"""NotificationCenter: the in-process store of user-facing alerts.

Holds the transient notifications the UI renders, newest first, and pushes
the full list to every subscriber after each change. Non-persistent entries
expire on their own when an event loop is running.

Actions are serializable command strings such as ``"redeliver:<job id>"``
or ``"navigate:/orders/<id>"``. The part before the first colon names a handler
registered with ``register_action``; the rest is passed to it as argument.
"""

import asyncio
from collections import Counter
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)


class NotificationKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    id: str
    kind: str
    title: str
    message: str
    timestamp: datetime
    persistent: bool = False
    action_label: str | None = None
    action: str | None = None
    auto_hide_seconds: float | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


Listener = Callable[[list[Notification]], None]


class NotificationCenter:
    def __init__(
        self,
        auto_hide_seconds: float = 5.0,
        error_auto_hide_seconds: float = 10.0,
        max_items: int = 50,
    ):
        self.auto_hide_seconds = auto_hide_seconds
        self.error_auto_hide_seconds = error_auto_hide_seconds
        self.max_items = max_items
        self._items: list[Notification] = []
        self._listeners: list[Listener] = []
        self._actions: dict[str, Callable[[str], object]] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    # -------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------
    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.get_all()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Notification listener raised", listener=repr(listener))

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def show(
        self,
        kind: str,
        title: str,
        message: str,
        *,
        persistent: bool = False,
        action_label: str | None = None,
        action: str | None = None,
        auto_hide_seconds: float | None = None,
    ) -> str:
        kind = NotificationKind(kind)
        if auto_hide_seconds is None and not persistent:
            auto_hide_seconds = (
                self.error_auto_hide_seconds if kind is NotificationKind.ERROR else self.auto_hide_seconds
            )

        notification = Notification(
            id=f"notif-{uuid4().hex[:12]}",
            kind=kind.value,
            title=title,
            message=message,
            timestamp=datetime.now(UTC),
            persistent=persistent,
            action_label=action_label or (action and "View"),
            action=action,
            auto_hide_seconds=None if persistent else auto_hide_seconds,
        )

        self._items.insert(0, notification)
        for dropped in self._items[self.max_items :]:
            self._cancel_timer(dropped.id)
        del self._items[self.max_items :]

        if notification.auto_hide_seconds:
            self._schedule_expiry(notification)

        self._notify()
        return notification.id

    def show_success(self, title: str, message: str, **options) -> str:
        return self.show(NotificationKind.SUCCESS.value, title, message, **options)

    def show_error(self, title: str, message: str, **options) -> str:
        options.setdefault("persistent", True)
        return self.show(NotificationKind.ERROR.value, title, message, **options)

    def show_warning(self, title: str, message: str, **options) -> str:
        return self.show(NotificationKind.WARNING.value, title, message, **options)

    def show_info(self, title: str, message: str, **options) -> str:
        return self.show(NotificationKind.INFO.value, title, message, **options)

    # -------------------------------------------------------------------
    # Expiry
    # -------------------------------------------------------------------
    def _schedule_expiry(self, notification: Notification) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # No loop to drive timers; the entry stays until dismissed
        self._timers[notification.id] = loop.call_later(
            notification.auto_hide_seconds, self._expire, notification.id
        )

    def _expire(self, notification_id: str) -> None:
        self._timers.pop(notification_id, None)
        self.hide(notification_id)

    def _cancel_timer(self, notification_id: str) -> None:
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()

    # -------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------
    def hide(self, notification_id: str) -> bool:
        remaining = [n for n in self._items if n.id != notification_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._cancel_timer(notification_id)
        self._notify()
        return True

    def mark_as_read(self, notification_id: str) -> bool:
        """Dismiss a persistent notification."""
        notification = self.get(notification_id)
        if notification is None or not notification.persistent:
            return False
        return self.hide(notification_id)

    def clear_all(self) -> None:
        for notification in self._items:
            self._cancel_timer(notification.id)
        self._items = []
        self._notify()

    def clear_by_type(self, kind: str) -> None:
        kind = NotificationKind(kind).value
        for notification in self._items:
            if notification.kind == kind:
                self._cancel_timer(notification.id)
        self._items = [n for n in self._items if n.kind != kind]
        self._notify()

    def close(self) -> None:
        """Cancel pending expiry timers."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get(self, notification_id: str) -> Notification | None:
        return next((n for n in self._items if n.id == notification_id), None)

    def get_all(self) -> list[Notification]:
        return list(self._items)

    def get_by_type(self, kind: str) -> list[Notification]:
        kind = NotificationKind(kind).value
        return [n for n in self._items if n.kind == kind]

    def get_stats(self) -> dict:
        return {
            "total": len(self._items),
            "by_type": dict(Counter(n.kind for n in self._items)),
            "persistent": sum(1 for n in self._items if n.persistent),
        }

    # -------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------
    def register_action(self, name: str, handler: Callable[[str], object]) -> None:
        self._actions[name] = handler

    def execute_action(self, notification_id: str) -> bool:
        """Run the notification's action. Returns False if there is none or it raised."""
        notification = self.get(notification_id)
        if notification is None or not notification.action:
            return False

        name, _, argument = notification.action.partition(":")
        handler = self._actions.get(name)
        if handler is None:
            logger.warning("No handler registered for notification action", notification_id=notification_id, action=name)
            return False

        try:
            handler(argument)
        except Exception:
            logger.exception("Notification action failed", notification_id=notification_id, action=name)
            return False
        return True
