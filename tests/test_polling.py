from __future__ import annotations

from unittest.mock import MagicMock

from thingpedia_devices.devices.polling import PollingSubscription


def test_poll_emits_only_changes():
    fetch = MagicMock(
        side_effect=[
            [{"state": "docked"}],
            [{"state": "docked"}],
            [{"state": "cleaning"}],
        ]
    )
    subscription = PollingSubscription(fetch=fetch, interval=5)

    assert subscription.poll() == [{"state": "docked"}]
    assert subscription.poll() == []
    assert subscription.poll() == [{"state": "cleaning"}]


def test_first_poll_emits_even_when_empty_after():
    subscription = PollingSubscription(fetch=lambda: [{"state": None, "status": None}])

    assert subscription.poll() == [{"state": None, "status": None}]


def test_iteration_sleeps_between_polls_until_stopped():
    fetch = MagicMock(side_effect=[[{"state": "docked"}], [{"state": "cleaning"}]])
    sleeps = []
    subscription = PollingSubscription(fetch=fetch, interval=30)

    def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        if len(sleeps) == 2:
            subscription.stop()

    subscription.sleep = fake_sleep

    assert list(subscription) == [{"state": "docked"}, {"state": "cleaning"}]
    assert sleeps == [30, 30]
    assert subscription.stopped
