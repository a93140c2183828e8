"""
Tests for per-unit failure isolation.
"""

import threading

from risk_engine.batching import run_isolated


def flaky(unit):
    if unit % 3 == 0:
        raise RuntimeError(f"unit {unit} failed")
    return unit * 10


class TestRunIsolated:
    def test_sequential(self):
        results = run_isolated(flaky, [1, 2, 3, 4])

        assert [r.ok for r in results] == [True, True, False, True]
        assert [r.value for r in results if r.ok] == [10, 20, 40]
        assert str(results[2].error) == "unit 3 failed"

    def test_parallel_preserves_order(self):
        units = list(range(1, 50))
        results = run_isolated(flaky, units, workers=8)

        assert [r.unit for r in results] == units
        assert sum(1 for r in results if not r.ok) == len([u for u in units if u % 3 == 0])

    def test_single_worker_stays_on_caller_thread(self):
        caller = threading.get_ident()
        seen = set()

        run_isolated(lambda unit: seen.add(threading.get_ident()), [1, 2, 3], workers=1)

        assert seen == {caller}

    def test_empty(self):
        assert run_isolated(flaky, [], workers=4) == []
