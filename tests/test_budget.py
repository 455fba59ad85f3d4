from __future__ import annotations

import threading

from hypothesis import given, settings, strategies as st

from rhi.loadgen.budget import RequestBudget


def test_budget_hands_out_exactly_total() -> None:
    budget = RequestBudget(3)
    assert [budget.claim() for _ in range(5)] == [True, True, True, False, False]
    assert budget.remaining == 0
    assert budget.claimed == 3


def test_closed_budget_refuses_claims() -> None:
    budget = RequestBudget(10)
    assert budget.claim()
    budget.close()
    assert budget.closed
    assert not budget.claim()
    assert budget.remaining == 9


@given(total=st.integers(min_value=1, max_value=400), workers=st.integers(min_value=1, max_value=12))
@settings(max_examples=25, deadline=None)
def test_concurrent_claims_are_unique(total: int, workers: int) -> None:
    budget = RequestBudget(total)
    counts = [0] * workers

    def drain(idx: int) -> None:
        while budget.claim():
            counts[idx] += 1

    threads = [threading.Thread(target=drain, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert sum(counts) == total
    assert budget.remaining == 0
