import threading
import time

import pytest

from kinnex.distributed import multi
from kinnex.errors import ToolFailureError


class Counter(object):
    def __init__(self):
        self.lock = threading.Lock()
        self.running = 0
        self.peak = 0
        self.seen = []

    def __call__(self, item):
        with self.lock:
            self.running += 1
            self.peak = max(self.peak, self.running)
        time.sleep(0.05)
        with self.lock:
            self.running -= 1
            self.seen.append(item)
        if item == "bad":
            raise ToolFailureError("convert %s" % item, 1)
        return item * 2


def test_results_in_input_order():
    assert multi.run_jobs(Counter(), [1, 2, 3, 4], 2) == [2, 4, 6, 8]


def test_concurrency_is_bounded():
    counter = Counter()
    multi.run_jobs(counter, list(range(8)), 3)
    assert 1 < counter.peak <= 3


def test_single_worker_runs_sequentially():
    counter = Counter()
    multi.run_jobs(counter, list(range(4)), 1)
    assert counter.peak == 1


def test_failure_does_not_stop_siblings():
    counter = Counter()
    with pytest.raises(ToolFailureError) as excinfo:
        multi.run_jobs(counter, ["a", "bad", "c", "d"], 2, name="bam2fastq unit01")
    assert sorted(counter.seen) == ["a", "bad", "c", "d"]
    assert "1 of 4 jobs failed" in str(excinfo.value)
    assert "convert bad" in excinfo.value.output


def test_no_items():
    assert multi.run_jobs(Counter(), [], 4) == []


def test_unexpected_errors_propagate():
    def broken(item):
        raise KeyError(item)
    with pytest.raises(KeyError):
        multi.run_jobs(broken, [1], 1)
