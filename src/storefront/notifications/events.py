"""Domain events for the DeliveryJob and NotificationPreference aggregates."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="DeliveryJob")
class DeliveryJobQueued:
    """A delivery job was created for one channel of an order event."""

    __version__ = 1

    job_id: Identifier(required=True)
    order_id: Identifier(required=True)
    recipient_id: Identifier(required=True)
    channel: String(required=True)
    event_type: String(required=True)
    max_attempts: Integer(required=True)
    queued_at: DateTime(required=True)


@storefront.event(part_of="DeliveryJob")
class DeliveryJobSent:
    """The channel adapter accepted the message."""

    __version__ = 1

    job_id: Identifier(required=True)
    order_id: Identifier(required=True)
    channel: String(required=True)
    attempts: Integer(required=True)
    message_id: String()
    sent_at: DateTime(required=True)


@storefront.event(part_of="DeliveryJob")
class DeliveryAttemptFailed:
    """One send attempt failed; the job will be retried."""

    __version__ = 1

    job_id: Identifier(required=True)
    order_id: Identifier(required=True)
    channel: String(required=True)
    error: Text(required=True)
    attempts: Integer(required=True)
    max_attempts: Integer(required=True)
    next_attempt_at: DateTime()
    failed_at: DateTime(required=True)


@storefront.event(part_of="DeliveryJob")
class DeliveryJobFailed:
    """The job gave up: attempts exhausted or the channel is unavailable."""

    __version__ = 1

    job_id: Identifier(required=True)
    order_id: Identifier(required=True)
    channel: String(required=True)
    error: Text(required=True)
    attempts: Integer(required=True)
    channel_unavailable: Boolean(default=False)
    failed_at: DateTime(required=True)


@storefront.event(part_of="NotificationPreference")
class PreferencesCreated:
    """Default notification preferences were created for a user."""

    __version__ = 1

    preference_id: Identifier(required=True)
    user_id: Identifier(required=True)
    email_enabled: Boolean(required=True)
    sms_enabled: Boolean(required=True)
    push_enabled: Boolean(required=True)
    created_at: DateTime(required=True)


@storefront.event(part_of="NotificationPreference")
class ChannelsUpdated:
    """A user's notification channel preferences were changed."""

    __version__ = 1

    preference_id: Identifier(required=True)
    user_id: Identifier(required=True)
    email_enabled: Boolean(required=True)
    sms_enabled: Boolean(required=True)
    push_enabled: Boolean(required=True)
    updated_at: DateTime(required=True)


@storefront.event(part_of="NotificationPreference")
class EventTypesUpdated:
    """A user switched order event notifications on or off."""

    __version__ = 1

    preference_id: Identifier(required=True)
    user_id: Identifier(required=True)
    enabled_event_types: Text(required=True)  # JSON list of event type values
    updated_at: DateTime(required=True)
