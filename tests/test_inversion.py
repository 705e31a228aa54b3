import pytest

from inversion import NIGHT_REQUEST, USER_REASON, InversionArbiter


@pytest.fixture
def arbiter():
    return InversionArbiter()


def test_nothing_requested(arbiter):
    assert arbiter.effective() is False


def test_single_request_is_the_reason(arbiter):
    assert arbiter.set_request("A", True) is True
    assert arbiter.effective() == "A"


def test_clearing_a_request_leaves_nothing_behind(arbiter):
    arbiter.set_request("A", True)
    assert arbiter.set_request("A", False) is True
    assert arbiter.effective() is False
    assert arbiter.requests == []


def test_none_clears_like_false(arbiter):
    arbiter.set_request("A", True)
    arbiter.set_request("A", None)
    assert arbiter.effective() is False


def test_repeating_a_request_is_unchanged(arbiter):
    assert arbiter.set_request("A", True) is True
    assert arbiter.set_request("A", True) is False
    assert arbiter.set_request("B", False) is False


def test_several_requesters_resolve_lexicographically(arbiter):
    arbiter.set_request("zeta", True)
    arbiter.set_request(NIGHT_REQUEST, True)
    arbiter.set_request("ambient-light", True)
    assert arbiter.effective() == "ambient-light"
    arbiter.set_request("ambient-light", False)
    assert arbiter.effective() == NIGHT_REQUEST


def test_forced_override_wins(arbiter):
    arbiter.set_request("A", True)
    arbiter.override = True
    assert arbiter.effective() == USER_REASON
    arbiter.set_request("A", False)
    assert arbiter.effective() == USER_REASON


def test_forced_off_override_beats_requests(arbiter):
    arbiter.set_request("A", True)
    arbiter.set_request(NIGHT_REQUEST, True)
    arbiter.override = False
    assert arbiter.effective() is False


def test_toggle_without_override_flips_current_state(arbiter):
    assert arbiter.toggled_override() is True
    arbiter.set_request("A", True)
    assert arbiter.toggled_override() is False


def test_toggle_with_override_clears_it(arbiter):
    arbiter.override = True
    assert arbiter.toggled_override() is None
    arbiter.override = False
    assert arbiter.toggled_override() is None


def test_explicit_toggle_value_wins(arbiter):
    arbiter.override = True
    assert arbiter.toggled_override(False) is False
    assert arbiter.toggled_override(True) is True


@pytest.mark.parametrize("key", [None, 1, b"A", ("A",)])
def test_keys_must_be_strings(arbiter, key):
    with pytest.raises(TypeError):
        arbiter.set_request(key, True)


@pytest.mark.parametrize("value", [1, "yes", 0.0])
def test_flags_must_be_booleans(arbiter, value):
    with pytest.raises(TypeError):
        arbiter.set_request("A", value)
    with pytest.raises(TypeError):
        arbiter.toggled_override(value)
