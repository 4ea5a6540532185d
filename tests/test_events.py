from __future__ import annotations

import pytest

from celestial_sim.core.events import EventChannel


def test_publish_in_subscription_order() -> None:
    channel = EventChannel()
    seen: list[str] = []
    channel.subscribe("tick", lambda p: seen.append(f"a{p}"))
    channel.subscribe("tick", lambda p: seen.append(f"b{p}"))
    channel.publish("tick", 1)
    channel.publish("other", 2)
    assert seen == ["a1", "b1"]


def test_unsubscribe() -> None:
    channel = EventChannel()
    seen: list[int] = []
    unsubscribe = channel.subscribe("tick", seen.append)
    channel.publish("tick", 1)
    unsubscribe()
    unsubscribe()
    channel.publish("tick", 2)
    assert seen == [1]
    assert channel.subscriber_count("tick") == 0


def test_handler_errors_propagate() -> None:
    channel = EventChannel()

    def broken(_: object) -> None:
        raise KeyError("handler")

    channel.subscribe("tick", broken)
    with pytest.raises(KeyError):
        channel.publish("tick")
