"""Tests for the bounded-concurrency scheduler."""

import asyncio
import random

import pytest

from outdated_plus.concurrency import run_bounded


class InFlightCounter:
    """Instrumented operation tracking how many calls are unresolved."""

    def __init__(self, delays=None, failing=()):
        self.delays = delays or {}
        self.failing = set(failing)
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = []

    async def __call__(self, item):
        self.started.append(item)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(item, 0))
            if item in self.failing:
                raise RuntimeError(f"boom: {item}")
            return f"result-{item}"
        finally:
            self.in_flight -= 1


def test_empty_items_return_empty_mapping_without_callbacks():
    calls = []
    operation = InFlightCounter()

    result = asyncio.run(run_bounded([], operation, calls.append, "fallback", 4))

    assert result == {}
    assert calls == []
    assert operation.started == []


@pytest.mark.parametrize("seed", range(10))
def test_in_flight_never_exceeds_limit(seed):
    rng = random.Random(seed)
    items = [f"pkg{i}" for i in range(25)]
    delays = {item: rng.uniform(0, 0.01) for item in items}
    limit = rng.randint(1, 6)
    operation = InFlightCounter(delays=delays)
    done = []

    result = asyncio.run(run_bounded(items, operation, done.append, "fallback", limit))

    assert operation.max_in_flight <= limit
    assert set(result) == set(items)
    assert sorted(done) == sorted(items)


def test_overlaps_operations_up_to_limit():
    items = ["a", "b", "c", "d"]
    operation = InFlightCounter(delays={item: 0.01 for item in items})

    asyncio.run(run_bounded(items, operation, None, "fallback", 3))

    assert operation.max_in_flight == 3


def test_failures_use_fallback_and_still_report_completion():
    items = ["ok1", "bad", "ok2"]
    operation = InFlightCounter(failing={"bad"})
    done = []

    result = asyncio.run(run_bounded(items, operation, done.append, "fallback", 2))

    assert result == {"ok1": "result-ok1", "bad": "fallback", "ok2": "result-ok2"}
    assert sorted(done) == sorted(items)
    assert len(done) == 3


def test_limit_below_one_is_coerced_to_one():
    items = ["a", "b", "c"]
    operation = InFlightCounter()

    result = asyncio.run(run_bounded(items, operation, None, "fallback", 0))

    assert operation.max_in_flight == 1
    assert len(result) == 3


def test_limit_one_completes_in_submission_order():
    items = ["slow", "fast", "medium"]
    operation = InFlightCounter(delays={"slow": 0.02, "fast": 0.0, "medium": 0.01})
    done = []

    asyncio.run(run_bounded(items, operation, done.append, "fallback", 1))

    assert done == items


def test_completion_order_follows_finish_time_not_submission():
    items = ["slow", "fast"]
    operation = InFlightCounter(delays={"slow": 0.05, "fast": 0.0})
    done = []

    asyncio.run(run_bounded(items, operation, done.append, "fallback", 2))

    assert done == ["fast", "slow"]
