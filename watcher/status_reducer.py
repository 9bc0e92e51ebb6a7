"""
Status reduction: folds a cycle's version records into a new aggregate status.

The previous status is never modified; a fresh Status is returned.
"""

from datetime import datetime
from typing import Callable, Optional, Sequence, Union

from watcher.models import (
    Diff, MatchStrategy, PatchEntry, ServiceVersionRecord, Status, VersionPair, utcnow
)


def find_previous(
    previous: Status,
    record: ServiceVersionRecord,
    index: int,
    match_by: MatchStrategy = MatchStrategy.NAME,
) -> Optional[ServiceVersionRecord]:
    """Locate the held entry for the service behind ``record``."""
    if MatchStrategy(match_by) == MatchStrategy.INDEX:
        if index < len(previous.versions):
            return previous.versions[index]
        return None

    for candidate in previous.versions:
        if candidate.name == record.name:
            return candidate
    return None


def generate_status(
    records: Sequence[ServiceVersionRecord],
    previous: Status,
    match_by: Union[MatchStrategy, str] = MatchStrategy.NAME,
    now: Callable[[], datetime] = utcnow,
) -> Status:
    """
    Build the new aggregate status for a cycle.

    Args:
        records: This cycle's records, in endpoint order
        previous: Status held from the previous cycle
        match_by: Previous-entry lookup strategy (by name or by position)
        now: Clock used when the aggregate time is bumped

    Returns:
        New Status with diffs, patches and versions for this cycle
    """
    train = previous.train
    time = previous.time
    diffs = []
    patches = []
    versions = []

    for index, record in enumerate(records):
        current = record.pair
        previous_version = find_previous(previous, record, index, match_by)
        previous_pair = previous_version.pair if previous_version else VersionPair()

        if current.train > train:
            train = current.train

        if previous_version is not None and current == previous_pair:
            entry_time = previous_version.time
        else:
            if time == previous.time:
                time = now()
            entry_time = time
            diffs.append(Diff(name=record.name, current=current, previous=previous_pair))

        # Tentative: train may still rise later in the fold.
        if current.patch > 0 and current.train == train:
            patches.append(PatchEntry(name=record.name, train=current.train, patch=current.patch))

        versions.append(record.model_copy(update={"time": entry_time}))

    return Status(
        train=train,
        time=time,
        diffs=diffs,
        patches=[patch for patch in patches if patch.train == train],
        versions=versions,
    )
