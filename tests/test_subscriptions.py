import pytest

from subscriptions import SubscriberRegistry


def test_first_publish_always_fires():
    reg = SubscriberRegistry()
    seen = []
    reg.add("a", seen.append)
    assert reg.publish(False) is True
    assert seen == [False]


def test_publish_only_on_change():
    reg = SubscriberRegistry()
    seen = []
    reg.add("a", seen.append)
    reg.publish(False)
    assert reg.publish(False) is False
    reg.publish("user")
    reg.publish("user")
    reg.publish("redshift-night")
    assert seen == [False, "user", "redshift-night"]


def test_callable_is_its_own_key():
    reg = SubscriberRegistry()
    seen = []

    def fn(v):
        seen.append(v)

    reg.add(fn)
    reg.publish("A")
    reg.remove(fn)
    reg.publish("B")
    assert seen == ["A"]


def test_same_key_overwrites():
    reg = SubscriberRegistry()
    first, second = [], []
    reg.add("ui", first.append)
    reg.add("ui", second.append)
    reg.publish(True)
    assert first == []
    assert second == [True]


def test_remove_unknown_key_is_a_noop():
    reg = SubscriberRegistry()
    seen = []
    reg.add("a", seen.append)
    reg.remove("missing")
    reg.publish(True)
    assert seen == [True]


def test_callback_removed_during_fanout_is_not_called():
    reg = SubscriberRegistry()
    seen = []
    reg.add("first", lambda v: reg.remove("second"))
    reg.add("second", seen.append)
    reg.publish("A")
    assert seen == []


@pytest.mark.parametrize("key,fn", [(1, print), ("k", None), ("k", "not callable"), (None, None)])
def test_invalid_subscriptions(key, fn):
    with pytest.raises(TypeError):
        SubscriberRegistry().add(key, fn)
