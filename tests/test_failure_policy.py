import pytest

from walkguide import FailurePolicy


def test_suppresses_on_threshold_and_stays_suppressed():
    policy = FailurePolicy(3)
    assert policy.record_failure() is False
    assert policy.record_failure() is False
    assert policy.record_failure() is True
    assert policy.suppressed
    # Further failures and even a success do not lift suppression.
    assert policy.record_failure() is False
    policy.record_success()
    assert policy.suppressed
    assert policy.consecutive_failures == 0


def test_success_resets_counter():
    policy = FailurePolicy(3)
    policy.record_failure()
    policy.record_failure()
    policy.record_success()
    policy.record_failure()
    assert policy.consecutive_failures == 1
    assert not policy.suppressed


def test_reset_clears_everything():
    policy = FailurePolicy(1)
    assert policy.record_failure() is True
    policy.reset()
    state = policy.snapshot()
    assert state.consecutive_failures == 0
    assert state.suppressed is False


def test_snapshot_is_a_copy():
    policy = FailurePolicy(2)
    state = policy.snapshot()
    policy.record_failure()
    assert state.consecutive_failures == 0


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        FailurePolicy(0)
