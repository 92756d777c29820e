"""
Unit tests for the per-object sample index.
"""

from src.runtime.sample_index import SampleIndex


def build(make_sample, epochs):
    index = SampleIndex()
    for epoch in epochs:
        index.insert(make_sample(epoch=epoch))
    return index


class TestInsert:
    def test_keeps_epoch_order(self, make_sample):
        index = build(make_sample, [30, 10, 20])
        assert index.epochs == [10, 20, 30]
        assert [s.epoch for s in index] == [10, 20, 30]

    def test_equal_epoch_overwrites(self, make_sample):
        index = build(make_sample, [10, 20])
        replacement = make_sample(epoch=20, rev="9999")
        index.insert(replacement)
        assert len(index) == 2
        assert index.closest(20, 0) is replacement


class TestClosest:
    """Test tolerance-bounded nearest lookup."""

    def test_empty(self):
        assert SampleIndex().closest(100, 1000) is None

    def test_single_within_tolerance(self, make_sample):
        index = build(make_sample, [100])
        assert index.closest(150, 50).epoch == 100
        assert index.closest(50, 50).epoch == 100

    def test_single_outside_tolerance(self, make_sample):
        index = build(make_sample, [100])
        assert index.closest(151, 50) is None
        assert index.closest(49, 50) is None

    def test_nearer_candidate(self, make_sample):
        index = build(make_sample, [100, 200])
        assert index.closest(140, 100).epoch == 100
        assert index.closest(160, 100).epoch == 200

    def test_tie_goes_to_before(self, make_sample):
        index = build(make_sample, [100, 200])
        assert index.closest(150, 100).epoch == 100

    def test_only_after_valid(self, make_sample):
        index = build(make_sample, [0, 200])
        assert index.closest(180, 50).epoch == 200

    def test_exact_match(self, make_sample):
        index = build(make_sample, [100, 200, 300])
        assert index.closest(200, 0).epoch == 200


class TestPurgeRange:
    def test_keeps_inclusive_range(self, make_sample):
        index = build(make_sample, [10, 20, 30, 40, 50])
        assert index.purge_range(20, 40) == 2
        assert index.epochs == [20, 30, 40]

    def test_idempotent(self, make_sample):
        index = build(make_sample, [10, 20, 30, 40, 50])
        index.purge_range(15, 45)
        once = index.epochs
        assert index.purge_range(15, 45) == 0
        assert index.epochs == once

    def test_everything_outside(self, make_sample):
        index = build(make_sample, [10, 20])
        assert index.purge_range(100, 200) == 2
        assert len(index) == 0
        assert index.closest(15, 100) is None
