import pytest
import pytest_asyncio
from storefront.notifications.center import NotificationCenter
from storefront.notifications.channel import ChannelRegistry
from storefront.notifications.channel.fake_email import FakeEmailAdapter
from storefront.notifications.channel.fake_push import FakePushAdapter
from storefront.notifications.channel.fake_sms import FakeSMSAdapter
from storefront.notifications.preference import NotificationPreference
from storefront.notifications.queue import NotificationDeliveryQueue


@pytest.fixture
def adapters():
    return {
        "email": FakeEmailAdapter(),
        "sms": FakeSMSAdapter(),
        "push": FakePushAdapter(),
    }


@pytest.fixture
def center():
    center = NotificationCenter()
    yield center
    center.close()


@pytest_asyncio.fixture
async def queue_factory(adapters, center):
    created = []

    def _build(registry=None, **options):
        options.setdefault("max_attempts", 3)
        options.setdefault("backoff_base", 0.0)
        options.setdefault("backoff_cap", 0.0)
        queue = NotificationDeliveryQueue(
            registry or ChannelRegistry(list(adapters.values())),
            center=center,
            **options,
        )
        created.append(queue)
        return queue

    yield _build
    for queue in created:
        await queue.stop()


@pytest.fixture
def queue(queue_factory):
    return queue_factory()


@pytest.fixture
def preferences():
    """Preferences for ``user-1``; pass channel flags to switch channels on or off."""

    def _build(**channels):
        pref = NotificationPreference.create_default("user-1")
        if channels:
            pref.update_channels(**channels)
        return pref

    return _build
