"""
Chain Reconstructor
===================

Path and trip segments are stored as join rows, each pointing at the
`segment_id` of the row that follows it (`next_segment_id`, None on the last
row). Storage engines do not keep row order, so every read rebuilds the
order from those pointers:

    rows (any order)              lookup / referenced set          walk
    ┌────┬──────┐
    │ B  │ → C  │                 lookup = {A, B, C}               A → B → C
    │ C  │ None │     ────────▶   referenced = {B, C}   ────────▶
    │ A  │ → B  │                 head = A
    └────┴──────┘

Malformed chains are tolerated, not rejected:
    - no head (cycle, or every row referenced): the input is returned as-is
    - a pointer that resolves to no row: the walk stops there and the
      unreached rows are left out of the result
"""

import logging
from typing import List, Optional, Protocol, Sequence, TypeVar

logger = logging.getLogger(__name__)


class ChainLink(Protocol):
    segment_id: str
    next_segment_id: Optional[str]


LinkT = TypeVar("LinkT", bound=ChainLink)


def reconstruct_chain(records: Sequence[LinkT]) -> List[LinkT]:
    """
    Orders the join rows of a single path or trip from head to tail.

    Args:
        records: Join rows of ONE path or trip, in any order. Mixing rows of
                 different owners is not detected.

    Returns:
        A new list. Same length as the input for well-formed chains.
    """
    if len(records) <= 1:
        return list(records)

    lookup = {record.segment_id: record for record in records}
    referenced = {
        record.next_segment_id for record in records if record.next_segment_id is not None
    }

    head = next((record for record in records if record.segment_id not in referenced), None)
    if head is None:
        logger.warning("Segment chain has no head (%d rows); keeping stored order", len(records))
        return list(records)

    ordered: List[LinkT] = []
    visited = set()
    current: Optional[LinkT] = head
    while current is not None and current.segment_id not in visited:
        ordered.append(current)
        visited.add(current.segment_id)
        if current.next_segment_id is None:
            break
        current = lookup.get(current.next_segment_id)

    if len(ordered) != len(records):
        logger.warning(
            "Segment chain walk reached %d of %d rows; dropping the rest",
            len(ordered),
            len(records),
        )
    return ordered
