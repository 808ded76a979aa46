from queuestat import Operation, TallyBucket, TotalsBucket
from queuestat.classifier import OPERATIONS
from queuestat.utils import address_sort_key


def test_new_key_has_all_operations_zeroed():
    bucket = TallyBucket()
    counts = bucket.counts_for("jobs")

    assert set(counts) == set(OPERATIONS)
    assert all(value == 0 for value in counts.values())
    assert "jobs" in bucket


def test_increment_and_totals():
    bucket = TallyBucket()
    bucket.increment("b", Operation.GET)
    bucket.increment("a", Operation.GET)
    bucket.increment("a", Operation.SET)

    assert bucket.keys() == ["a", "b"]
    assert bucket.get("a")[Operation.GET] == 1
    assert bucket.get("b")[Operation.SET] == 0
    assert bucket.get("missing") is None
    assert bucket.total(Operation.GET) == 2
    assert len(bucket) == 2


def test_host_keys_sort_numerically():
    bucket = TallyBucket()
    for host in ("10.0.0.10", "10.0.0.2", "2001:db8::1", "10.0.0.1"):
        bucket.increment(host, Operation.OTHER)

    assert bucket.keys(address_sort_key) == ["10.0.0.1", "10.0.0.2", "10.0.0.10", "2001:db8::1"]


def test_totals_bucket_split():
    totals = TotalsBucket()
    totals.record(Operation.SET, matched=True)
    totals.record(Operation.SET, matched=False)
    totals.record(Operation.GET, matched=True)

    for operation in OPERATIONS:
        assert totals.all[operation] == totals.matched[operation] + totals.filtered[operation]
    assert totals.row("all")[Operation.SET] == 2
    assert totals.row("filtered")[Operation.GET] == 0
