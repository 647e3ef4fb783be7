"""Tests for the event bus."""

import pytest

from combofield.domain.events import EventBus, IdentifierResolved, LabelChanged


def test_publish_reaches_subscribers_of_that_type_only():
    bus = EventBus()
    labels, resolved = [], []
    bus.subscribe(LabelChanged, labels.append)
    bus.subscribe(IdentifierResolved, resolved.append)

    bus.publish(LabelChanged(1, "Acme Corp"))

    assert [e.label for e in labels] == ["Acme Corp"]
    assert resolved == []
    assert labels[0].timestamp > 0


def test_duplicate_subscription_is_ignored():
    bus = EventBus()
    seen = []
    bus.subscribe(LabelChanged, seen.append)
    bus.subscribe(LabelChanged, seen.append)

    bus.publish(LabelChanged(1, "x"))
    assert len(seen) == 1


def test_unsubscribe():
    bus = EventBus()
    seen = []
    bus.subscribe(LabelChanged, seen.append)
    bus.unsubscribe(LabelChanged, seen.append)
    bus.unsubscribe(LabelChanged, seen.append)

    bus.publish(LabelChanged(1, "x"))
    assert seen == []
    assert not bus.has_subscribers(LabelChanged)


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(LabelChanged, broken)
    bus.subscribe(LabelChanged, seen.append)

    bus.publish(LabelChanged(1, "x"))
    assert len(seen) == 1


def test_async_handlers_are_rejected():
    bus = EventBus()

    async def handler(event):
        pass

    with pytest.raises(TypeError):
        bus.subscribe(LabelChanged, handler)


def test_clear():
    bus = EventBus()
    bus.subscribe(LabelChanged, lambda e: None)
    bus.clear()
    assert not bus.has_subscribers(LabelChanged)
