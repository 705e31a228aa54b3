"""Fakes for the engine's collaborators: clock, displays, settings, topology."""

import pytest

from display import DisplayHandle
from exclusion import ExclusionFilter
from redshift_engine import RedshiftEngine

DAY = 86400


def hms(text):
    parts = [int(p) for p in text.split(":")]
    while len(parts) < 3:
        parts.append(0)
    return parts[0] * 3600 + parts[1] * 60 + parts[2]


class FakeHandle:
    def __init__(self, clock, due, fn):
        self.clock = clock
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Monotonic fake time; now() reports seconds since midnight."""

    def __init__(self, start=0.0):
        self.elapsed = float(start)
        self.handles = []

    def now(self):
        return self.elapsed % DAY

    def set_time(self, text):
        self.elapsed = float(hms(text))

    def call_later(self, delay, fn):
        handle = FakeHandle(self, self.elapsed + delay, fn)
        self.handles.append(handle)
        return handle

    def call_at(self, time_of_day, fn):
        return self.call_later((time_of_day - self.now()) % DAY, fn)

    def pending(self):
        return [h for h in self.handles if not h.cancelled and h.due is not None]

    def advance(self, seconds):
        """Move time forward, firing due callbacks in order."""
        target = self.elapsed + seconds
        while True:
            due = [h for h in self.pending() if h.due <= target]
            if not due:
                break
            h = min(due, key=lambda x: x.due)
            self.elapsed = max(self.elapsed, h.due)
            h.due = None
            h.fn()
        self.elapsed = target


class FakeDisplays:
    def __init__(self, names=("DISPLAY1",)):
        self.handles = [DisplayHandle(n) for n in names]
        self.gamma = {}
        self.calls = []

    def list_displays(self):
        return list(self.handles)

    def set_gamma(self, handle, white, black):
        self.gamma[handle.name] = (tuple(white), tuple(black))
        self.calls.append(("set", handle.name))

    def restore_gamma(self, handle=None):
        for h in [handle] if handle else self.handles:
            self.gamma.pop(h.name, None)
        self.calls.append(("restore", None))


class FakeSettings:
    def __init__(self, data=None):
        self.data = dict(data or {})

    def get(self, key, default=None):
        return self.data.get(key, default)

    def set(self, key, value):
        self.data[key] = value

    def clear(self, key):
        self.data.pop(key, None)


class FakeWatch:
    def __init__(self, topology, fn):
        self.topology = topology
        self.fn = fn

    def stop(self):
        self.topology.watches.remove(self)


class FakeTopology:
    def __init__(self):
        self.watches = []

    def on_change(self, fn):
        watch = FakeWatch(self, fn)
        self.watches.append(watch)
        return watch

    def fire(self):
        for w in list(self.watches):
            w.fn()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def displays():
    return FakeDisplays()


@pytest.fixture
def settings():
    return FakeSettings()


@pytest.fixture
def topology():
    return FakeTopology()


@pytest.fixture
def filters():
    created = []

    def factory(apps):
        f = ExclusionFilter()
        f.apps = apps
        created.append(f)
        return f

    factory.created = created
    return factory


@pytest.fixture
def engine(displays, clock, settings, topology, filters):
    eng = RedshiftEngine(displays, clock, settings, topology, filter_factory=filters)
    yield eng
    eng.stop()
