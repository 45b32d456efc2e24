from __future__ import annotations

from typing import Callable, Iterable

from hotzone.models import Hotzone, now_iso

GAP_TOLERANCE_S = 2.0


def merge_hotzones(
    hotzones: Iterable[Hotzone],
    gap_tolerance_s: float = GAP_TOLERANCE_S,
    clock: Callable[[], str] = now_iso,
) -> list[Hotzone]:
    """Coalesce overlapping or nearly adjacent hotzones.

    The earliest hotzone of each run absorbs the others and records one
    ``merge`` adjustment per absorbed interval.
    """

    ordered = sorted(hotzones, key=lambda item: item.start_time)
    if not ordered:
        return []

    merged: list[Hotzone] = []
    current = ordered[0]
    for nxt in ordered[1:]:
        if nxt.start_time <= current.end_time + gap_tolerance_s:
            current = current.with_bounds(
                current.start_time, max(current.end_time, nxt.end_time)
            ).with_adjustment("merge", clock())
            continue
        merged.append(current)
        current = nxt

    merged.append(current)
    return merged
