"""Conflict resolution for divergent record versions.

Resolution is last-write-wins on whole records:
- no local version -> remote
- strictly greater mutated_at wins, all fields included
- equal mutated_at -> remote

The tombstone flag is an ordinary field here, so a newer edit resurrects an
older deletion and a newer deletion beats an older edit.
"""

from __future__ import annotations

from recordsync.core.types import Record


def merge(local: Record | None, remote: Record) -> Record:
    """Pick the version of a record to keep.

    Args:
        local: Version held by the resolving side, if any.
        remote: Version received from the other side.

    Returns:
        The winning record, unchanged.
    """
    if local is None:
        return remote
    if local.key != remote.key:
        raise ValueError(f"Cannot merge different records: {local.key!r} != {remote.key!r}")
    if local.mutated_at > remote.mutated_at:
        return local
    return remote


def is_newer(candidate: Record, current: Record | None) -> bool:
    """Check whether candidate would replace current under merge()."""
    return current is None or merge(current, candidate) is candidate and candidate != current
