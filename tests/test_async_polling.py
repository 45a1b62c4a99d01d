"""Tests for the async completion wait loop."""

import pytest

from solution_deployer.core.exceptions import RemoteTimeoutError
from solution_deployer.deploy.models import AsyncOperation, ImportState
from solution_deployer.deploy.polling import wait_for_completion


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _sequence(*states):
    remaining = list(states)

    def fetch():
        state = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return AsyncOperation(job_id="job-1", state=state)

    return fetch


def test_returns_first_terminal_state():
    clock = FakeClock()
    fetch = _sequence(ImportState.PENDING, ImportState.IN_PROGRESS, ImportState.SUCCEEDED)

    operation = wait_for_completion(fetch, poll_interval_ms=500, timeout_seconds=10, sleep=clock.sleep, clock=clock)

    assert operation.state == ImportState.SUCCEEDED
    assert clock.sleeps == [0.5, 0.5]


def test_terminal_on_first_check_does_not_sleep():
    clock = FakeClock()

    operation = wait_for_completion(
        _sequence(ImportState.FAILED), poll_interval_ms=500, timeout_seconds=10, sleep=clock.sleep, clock=clock
    )

    assert operation.state == ImportState.FAILED
    assert clock.sleeps == []


def test_times_out_when_never_terminal():
    clock = FakeClock()

    with pytest.raises(RemoteTimeoutError) as exc_info:
        wait_for_completion(
            _sequence(ImportState.IN_PROGRESS), poll_interval_ms=500, timeout_seconds=1.75, sleep=clock.sleep, clock=clock
        )

    assert exc_info.value.code == "timeout"
    # Last sleep is clipped to the deadline
    assert clock.sleeps == [0.5, 0.5, 0.5, 0.25]


@pytest.mark.parametrize("state", [ImportState.SUCCEEDED, ImportState.FAILED, ImportState.CANCELED, ImportState.SKIPPED])
def test_terminal_states(state):
    assert state.is_terminal


@pytest.mark.parametrize("state", [ImportState.PENDING, ImportState.IN_PROGRESS])
def test_non_terminal_states(state):
    assert not state.is_terminal
