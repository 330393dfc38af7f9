"""NotificationPreference aggregate: which channels and order events a user wants.

A user receives an order event over a channel only when both the channel flag
and the event-type flag are on. Users without a stored record get the
defaults: email on, SMS and push off, every event type on.
"""

import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier

from storefront.domain import storefront
from storefront.notifications.events import (
    ChannelsUpdated,
    EventTypesUpdated,
    PreferencesCreated,
)
from storefront.notifications.job import NotificationChannel, NotificationEventType

_EVENT_TYPE_FLAGS = {
    NotificationEventType.ORDER_CONFIRMATION: "order_confirmation",
    NotificationEventType.STATUS_UPDATES: "status_updates",
    NotificationEventType.SHIPPING_UPDATES: "shipping_updates",
    NotificationEventType.DELIVERY_CONFIRMATION: "delivery_confirmation",
    NotificationEventType.ISSUE_RESOLUTION: "issue_resolution",
}

_CHANNEL_FLAGS = {
    NotificationChannel.EMAIL: "email_enabled",
    NotificationChannel.SMS: "sms_enabled",
    NotificationChannel.PUSH: "push_enabled",
}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class NotificationPreference:
    """A user's notification channel and event-type preferences."""

    user_id: Identifier(required=True, unique=True)

    # Channel preferences
    email_enabled: Boolean(default=True)
    sms_enabled: Boolean(default=False)
    push_enabled: Boolean(default=False)

    # Event-type preferences
    order_confirmation: Boolean(default=True)
    status_updates: Boolean(default=True)
    shipping_updates: Boolean(default=True)
    delivery_confirmation: Boolean(default=True)
    issue_resolution: Boolean(default=True)

    # Timestamps
    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create_default(cls, user_id):
        """Create default preferences: email only, every order event."""
        now = datetime.now(UTC)

        preference = cls(
            user_id=user_id,
            email_enabled=True,
            sms_enabled=False,
            push_enabled=False,
            created_at=now,
            updated_at=now,
        )

        preference.raise_(
            PreferencesCreated(
                preference_id=str(preference.id),
                user_id=str(user_id),
                email_enabled=True,
                sms_enabled=False,
                push_enabled=False,
                created_at=now,
            )
        )

        return preference

    # -------------------------------------------------------------------
    # Channel management
    # -------------------------------------------------------------------
    def update_channels(self, email=None, sms=None, push=None):
        """Update channel preferences. Pass None to keep unchanged."""
        if email is None and sms is None and push is None:
            raise ValidationError({"channels": ["At least one channel preference must be provided"]})

        now = datetime.now(UTC)

        if email is not None:
            self.email_enabled = email
        if sms is not None:
            self.sms_enabled = sms
        if push is not None:
            self.push_enabled = push
        self.updated_at = now

        self.raise_(
            ChannelsUpdated(
                preference_id=str(self.id),
                user_id=str(self.user_id),
                email_enabled=self.email_enabled,
                sms_enabled=self.sms_enabled,
                push_enabled=self.push_enabled,
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Event-type management
    # -------------------------------------------------------------------
    def update_event_types(self, **flags):
        """Switch event types on or off, keyed by event type value.

        Example: ``update_event_types(statusUpdates=False)``.
        """
        if not flags:
            raise ValidationError({"event_types": ["At least one event type preference must be provided"]})

        updates = {}
        for key, enabled in flags.items():
            try:
                event_type = NotificationEventType(key)
            except ValueError:
                raise ValidationError({"event_types": [f"Unknown event type: {key}"]}) from None
            updates[_EVENT_TYPE_FLAGS[event_type]] = bool(enabled)

        now = datetime.now(UTC)
        for attribute, enabled in updates.items():
            setattr(self, attribute, enabled)
        self.updated_at = now

        self.raise_(
            EventTypesUpdated(
                preference_id=str(self.id),
                user_id=str(self.user_id),
                enabled_event_types=json.dumps([t.value for t in NotificationEventType if self.is_subscribed_to(t)]),
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_enabled_channels(self):
        """Return channels the user has turned on."""
        return [channel.value for channel, flag in _CHANNEL_FLAGS.items() if getattr(self, flag)]

    def is_subscribed_to(self, event_type):
        return bool(getattr(self, _EVENT_TYPE_FLAGS[NotificationEventType(event_type)]))

    def channels_for(self, event_type):
        """Channels to deliver ``event_type`` over; empty when the event type is off."""
        if not self.is_subscribed_to(event_type):
            return []
        return self.get_enabled_channels()


# ---------------------------------------------------------------------------
# Preference lookup
# ---------------------------------------------------------------------------
class UserPreferencesStore(ABC):
    """Read path for the preferences owned by the host application."""

    @abstractmethod
    async def get(self, user_id: str) -> NotificationPreference: ...


class RepositoryPreferencesStore(UserPreferencesStore):
    """Preferences kept in the domain repository, with defaults for unknown users."""

    def __init__(self, domain=storefront):
        self._domain = domain

    def _find(self, user_id):
        repo = self._domain.repository_for(NotificationPreference)
        prefs = repo._dao.query.filter(user_id=user_id).all().items
        return prefs[0] if prefs else None

    async def get(self, user_id: str) -> NotificationPreference:
        with self._domain.domain_context():
            return self._find(user_id) or NotificationPreference.create_default(user_id)

    async def save(self, preference: NotificationPreference) -> NotificationPreference:
        with self._domain.domain_context():
            self._domain.repository_for(NotificationPreference).add(preference)
        return preference

    async def update(self, user_id: str, channels: dict | None = None, event_types: dict | None = None):
        """Apply channel and event-type changes, creating the record if needed."""
        with self._domain.domain_context():
            preference = self._find(user_id) or NotificationPreference.create_default(user_id)
            if channels:
                preference.update_channels(**channels)
            if event_types:
                preference.update_event_types(**event_types)
            self._domain.repository_for(NotificationPreference).add(preference)
        return preference
