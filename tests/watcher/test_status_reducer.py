"""
Test cases for status reduction.
"""

from datetime import timedelta

import pytest

from watcher.models import Diff, MatchStrategy, PatchEntry, VersionPair
from watcher.status_reducer import find_previous, generate_status


class TestGenerateStatus:
    """Test cases for generate_status."""

    def test_unchanged_versions_produce_no_diffs(self, seed_status, records_factory, clock):
        """Test that identical versions leave the aggregate untouched."""
        status = generate_status(records_factory("1.81.0"), seed_status, now=clock)

        assert status.diffs == []
        assert status.patches == []
        assert status.train == 81
        assert status.time == seed_status.time
        assert [v.time for v in status.versions] == [None] * 4

    def test_single_patch_bump(self, seed_status, records_factory, clock, now):
        """Test one service moving to a patch release of the same train."""
        records = records_factory({
            "content": "1.81.0", "auth": "1.81.1", "profile": "1.81.0", "oauth": "1.81.0"
        })

        status = generate_status(records, seed_status, now=clock)

        assert status.diffs == [
            Diff(name="auth", current=VersionPair(train=81, patch=1), previous=VersionPair(train=81, patch=0))
        ]
        assert status.patches == [PatchEntry(name="auth", train=81, patch=1)]
        assert status.train == 81
        assert status.time == now
        assert status.versions[1].time == now
        assert status.versions[0].time is None

    def test_patch_bump_on_all_services(self, seed_status, records_factory, clock, now):
        """Test every service moving to the same patch."""
        status = generate_status(records_factory("0.81.1"), seed_status, now=clock)

        assert [diff.name for diff in status.diffs] == ["content", "auth", "profile", "oauth"]
        assert status.patches == [
            PatchEntry(name=name, train=81, patch=1) for name in ["content", "auth", "profile", "oauth"]
        ]
        assert status.time == now

    def test_train_bump(self, seed_status, records_factory, clock, now):
        """Test a service moving to a new train."""
        records = records_factory({
            "content": "1.82.0", "auth": "1.81.0", "profile": "1.81.0", "oauth": "1.81.0"
        })

        status = generate_status(records, seed_status, now=clock)

        assert status.train == 82
        assert status.time == now
        assert status.patches == []
        assert status.diffs == [
            Diff(name="content", current=VersionPair(train=82, patch=0), previous=VersionPair(train=81, patch=0))
        ]

    def test_superseded_patches_discarded(self, status_factory, records_factory, clock, now):
        """Test patches from an older train are dropped once a later service raises the train."""
        previous = status_factory(
            train=81, time=now - timedelta(days=1), versions=[(81, 2), (81, 0), (81, 0), (81, 0)]
        )
        records = records_factory({
            "content": "1.81.2", "auth": "1.81.0", "profile": "1.81.0", "oauth": "1.82.0"
        })

        status = generate_status(records, previous, now=clock)

        assert status.train == 82
        assert status.patches == []

    def test_patches_only_for_current_train(self, status_factory, records_factory, clock, now):
        """Test the patch list invariant across mixed trains."""
        previous = status_factory(
            train=82, time=now - timedelta(days=1), versions=[(82, 0), (81, 0), (82, 0), (81, 0)]
        )
        records = records_factory({
            "content": "1.82.3", "auth": "1.81.4", "profile": "1.82.0", "oauth": "1.81.0"
        })

        status = generate_status(records, previous, now=clock)

        assert status.patches == [PatchEntry(name="content", train=82, patch=3)]
        assert all(patch.train == status.train and patch.patch > 0 for patch in status.patches)

    def test_unchanged_patch_still_listed(self, status_factory, records_factory, clock, now):
        """Test an existing patch release appears in patches without a diff."""
        previous = status_factory(
            train=81, time=now - timedelta(days=1), versions=[(81, 0), (81, 2), (81, 0), (81, 0)]
        )
        records = records_factory({
            "content": "1.81.0", "auth": "1.81.2", "profile": "1.81.0", "oauth": "1.81.0"
        })

        status = generate_status(records, previous, now=clock)

        assert status.diffs == []
        assert status.patches == [PatchEntry(name="auth", train=81, patch=2)]

    def test_idempotent_second_cycle(self, seed_status, records_factory, clock, now):
        """Test running the same data twice yields no new diffs."""
        records = records_factory("0.81.1")
        first = generate_status(records, seed_status, now=clock)

        later = now + timedelta(hours=1)
        second = generate_status(records, first, now=lambda: later)

        assert len(first.diffs) == 4
        assert second.diffs == []
        assert second.time == first.time
        assert [v.time for v in second.versions] == [now] * 4

    def test_per_entry_time_retained(self, seed_status, records_factory, clock, now):
        """Test unchanged services keep the time of their last change."""
        first = generate_status(records_factory("0.81.1"), seed_status, now=clock)
        later = now + timedelta(hours=1)
        records = records_factory({
            "content": "0.81.1", "auth": "0.81.2", "profile": "0.81.1", "oauth": "0.81.1"
        })

        second = generate_status(records, first, now=lambda: later)

        assert second.time == later
        assert [v.time for v in second.versions] == [now, later, now, now]

    def test_time_bumped_once_per_cycle(self, seed_status, records_factory, now):
        """Test the clock is consulted once even with several diffs."""
        calls = []

        def clock():
            calls.append(1)
            return now + timedelta(seconds=len(calls))

        status = generate_status(records_factory("0.81.1"), seed_status, now=clock)

        assert len(calls) == 1
        assert {v.time for v in status.versions} == {status.time}

    def test_versions_keep_input_order_and_fields(self, seed_status, records_factory, clock, repos):
        """Test versions mirror the input records."""
        records = records_factory("0.81.1")

        status = generate_status(records, seed_status, now=clock)

        assert [v.name for v in status.versions] == ["content", "auth", "profile", "oauth"]
        assert all(v.tag == "v0.81.1" for v in status.versions)
        assert [v.repo for v in status.versions] == [repos[n] for n in ["content", "auth", "profile", "oauth"]]

    def test_missing_previous_entry_diffs(self, seed_status, records_factory, clock):
        """Test a service absent from the previous status always diffs."""
        records = records_factory("1.81.0")
        records[2] = records[2].model_copy(update={"name": "newcomer"})

        status = generate_status(records, seed_status, now=clock)

        assert status.diffs == [
            Diff(name="newcomer", current=VersionPair(train=81, patch=0), previous=VersionPair())
        ]
        assert status.diffs[0].previous.train is None

    def test_previous_status_not_mutated(self, seed_status, records_factory, clock):
        """Test the held status is left untouched."""
        before = seed_status.model_copy(deep=True)

        generate_status(records_factory("1.82.1"), seed_status, now=clock)

        assert seed_status == before

    def test_name_lookup_tolerates_reordering(self, status_factory, records_factory, clock, now):
        """Test name matching finds entries regardless of position."""
        previous = status_factory(train=81, time=now - timedelta(days=1))
        previous.versions.reverse()

        status = generate_status(records_factory("1.81.0"), previous, now=clock)

        assert status.diffs == []

    def test_index_lookup_compares_by_position(self, status_factory, records_factory, clock, now):
        """Test the positional variant ignores names."""
        previous = status_factory(
            train=81, time=now - timedelta(days=1), versions=[(81, 3), (81, 0), (81, 0), (81, 0)]
        )
        previous.versions.reverse()
        records = records_factory("1.81.0")

        by_name = generate_status(records, previous, match_by=MatchStrategy.NAME, now=clock)
        by_index = generate_status(records, previous, match_by="index", now=clock)

        assert by_name.diffs == [
            Diff(name="content", current=VersionPair(train=81, patch=0), previous=VersionPair(train=81, patch=3))
        ]
        assert [diff.name for diff in by_index.diffs] == ["oauth"]


class TestFindPrevious:
    """Test cases for find_previous."""

    def test_by_name(self, seed_status, records_factory):
        """Test name lookup."""
        record = records_factory("1.81.0")[2]
        assert find_previous(seed_status, record, 0).name == "profile"

    def test_by_index_out_of_range(self, seed_status, records_factory):
        """Test positional lookup past the end."""
        record = records_factory("1.81.0")[0]
        assert find_previous(seed_status, record, 7, MatchStrategy.INDEX) is None

    @pytest.mark.parametrize("index", [0, 1, 2, 3])
    def test_by_index(self, seed_status, records_factory, index):
        """Test positional lookup."""
        record = records_factory("1.81.0")[0]
        assert find_previous(seed_status, record, index, "index") is seed_status.versions[index]
