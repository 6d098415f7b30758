"""
Sat ordinal resolution over index-supplied ranges.
"""

from __future__ import annotations

from collections.abc import Iterable

from ordwallet.models import OutPoint, SatPoint, SatRange


def find_sat_in_ranges(
    sat: int, output_ranges: Iterable[tuple[OutPoint, list[SatRange] | None]]
) -> SatPoint | None:
    """
    Locate ``sat`` among outputs in the order given.

    Ranges within one output ascend and do not overlap, so the offset of a
    sat is the summed length of the ranges before it in that output.
    Outputs without ranges (spent according to the index) are skipped.
    Ranges are not sorted across outputs, so this is a linear scan.
    """
    for outpoint, sat_ranges in output_ranges:
        if sat_ranges is None:
            continue
        offset = 0
        for start, end in sat_ranges:
            if start <= sat < end:
                return SatPoint(outpoint, offset + sat - start)
            offset += end - start
    return None
