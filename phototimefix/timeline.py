"""
Target-time resolution for a collection of media files.

Records are ordered by filesystem modification time (path breaks ties), then
run through five stages, each mutating the same list in place:

    order -> filename override -> anchor targets -> gap inference -> uniqueness

All times are integer POSIX seconds. Nothing here touches the disk.
"""
import enum
from dataclasses import dataclass, field
from itertools import groupby
from typing import Iterator, List, Optional, Tuple

from phototimefix import SECONDS_PER_DAY


class ShotSource(enum.Enum):
    NONE = "none"
    METADATA = "metadata"
    FILENAME = "filename"


@dataclass(frozen=True)
class Anchor:
    time: int
    source: ShotSource


@dataclass
class Options:
    recursive: bool = False
    include_hidden: bool = False
    dry_run: bool = False

    enable_filename_fallback_for_shot: bool = True
    enable_filename_override_for_target: bool = True

    filename_override_days: int = 7
    anchor_gap_limit_days: int = 90

    one_side_step: bool = True
    one_side_step_seconds: int = 1

    write_exif_if_missing: bool = True
    sync_file_times: bool = True
    sync_sidecars: bool = False

    def validate(self):
        if self.filename_override_days < 0:
            raise ValueError(f"filename override days must be >= 0, got {self.filename_override_days}")
        if self.anchor_gap_limit_days < 0:
            raise ValueError(f"anchor gap limit days must be >= 0, got {self.anchor_gap_limit_days}")
        if self.one_side_step_seconds < 1:
            raise ValueError(f"step seconds must be >= 1, got {self.one_side_step_seconds}")
        return self

    @property
    def filename_override_seconds(self) -> int:
        return self.filename_override_days * SECONDS_PER_DAY

    @property
    def anchor_gap_limit_seconds(self) -> int:
        return self.anchor_gap_limit_days * SECONDS_PER_DAY


@dataclass
class Record:
    """One file under consideration."""
    path: str
    mtime: int
    anchor: Optional[Anchor] = None
    filename_time: Optional[int] = None
    created: Optional[int] = None   # platform creation time, if the OS keeps one

    target: Optional[int] = None
    target_reason: str = ""

    @property
    def order_key(self) -> Tuple[int, str]:
        return (self.mtime, str(self.path))

    @property
    def has_anchor(self) -> bool:
        return self.anchor is not None

    @property
    def is_inferred(self) -> bool:
        return self.anchor is None

    def add_reason(self, reason: str):
        self.target_reason = f"{self.target_reason} + {reason}" if self.target_reason else reason


# ------------------------------------------------------------
# stages
# ------------------------------------------------------------

def order_records(records) -> List[Record]:
    return sorted(records, key=lambda r: r.order_key)


def apply_filename_override(records: List[Record], options: Options) -> List[Record]:
    """
    Pin target to the filename time when the filesystem times drift too far
    from it. With two reference times both must exceed the threshold.
    """
    if not options.enable_filename_override_for_target:
        return records

    threshold = options.filename_override_seconds
    for rec in records:
        name_time = rec.filename_time
        if name_time is None:
            continue
        if rec.created is not None:
            if abs(rec.created - name_time) > threshold and abs(rec.mtime - name_time) > threshold:
                rec.target = name_time
                rec.target_reason = "filename override (fs create/write too far)"
        elif abs(rec.mtime - name_time) > threshold:
            rec.target = name_time
            rec.target_reason = "filename override (mtime too far)"
    return records


def assign_anchor_targets(records: List[Record]) -> List[Record]:
    for rec in records:
        if rec.target is None and rec.anchor is not None:
            rec.target = rec.anchor.time
            if rec.anchor.source is ShotSource.FILENAME:
                rec.target_reason = "shot from filename"
            else:
                rec.target_reason = "shot from metadata"
    return records


@dataclass
class Segment:
    start: int                      # index of the first record in the run
    length: int
    prev_time: Optional[int] = None
    next_time: Optional[int] = None


def iter_segments(records: List[Record]) -> Iterator[Segment]:
    """Yield every maximal run of records without an anchor, with its bounding anchor times."""
    tagged = [(i, rec.anchor.time if rec.anchor else None) for i, rec in enumerate(records)]
    for missing, run in groupby(tagged, key=lambda item: item[1] is None):
        if not missing:
            continue
        run = list(run)
        start, end = run[0][0], run[-1][0]
        yield Segment(
            start=start,
            length=len(run),
            prev_time=tagged[start - 1][1] if start > 0 else None,
            next_time=tagged[end + 1][1] if end + 1 < len(tagged) else None,
        )


def _trunc_div(num: int, den: int) -> int:
    # integer division rounding toward zero
    q = abs(num) // den
    return q if num >= 0 else -q


def fill_segment(segment: Segment, options: Options) -> List[Tuple[Optional[int], str]]:
    """Return (time, reason) for each member of the segment, in order."""
    m = segment.length
    prev_t, next_t = segment.prev_time, segment.next_time
    step = options.one_side_step_seconds

    if prev_t is None and next_t is None:
        return [(None, "")] * m

    if next_t is None:
        if options.one_side_step:
            return [(prev_t + k * step, "only prev anchor -> filled +1s steps") for k in range(1, m + 1)]
        return [(prev_t, "only prev anchor -> filled")] * m

    if prev_t is None:
        if options.one_side_step:
            return [(next_t - (m - k + 1) * step, "only next anchor -> filled -1s steps") for k in range(1, m + 1)]
        return [(next_t, "only next anchor -> filled")] * m

    gap = next_t - prev_t
    if abs(gap) > options.anchor_gap_limit_seconds:
        return [(prev_t if j < m // 2 else next_t, "gap too large -> nearest anchor fill") for j in range(m)]

    if abs(gap) < m + 1:
        direction = 1 if gap >= 0 else -1
        return [(prev_t + direction * k * step, "anchors too close -> step-filled") for k in range(1, m + 1)]

    return [(prev_t + _trunc_div(gap * k, m + 1), "interpolated between anchors") for k in range(1, m + 1)]


def infer_missing(records: List[Record], options: Options) -> List[Record]:
    """Fill targets for records without anchor from the nearest anchors around them."""
    for segment in iter_segments(records):
        fills = fill_segment(segment, options)
        for offset, (ts, reason) in enumerate(fills):
            rec = records[segment.start + offset]
            if ts is None or rec.target is not None:
                continue
            rec.target = ts
            rec.target_reason = reason
    return records


def make_unique(records: List[Record], options: Options) -> List[Record]:
    """
    Bump inferred targets that collide with or fall behind the previous
    resolved target. Anchored records are never moved.
    """
    step = max(1, options.one_side_step_seconds)
    prev_target = None
    for rec in records:
        if rec.target is None:
            continue
        if prev_target is not None and rec.is_inferred and rec.target <= prev_target:
            rec.target = prev_target + step
            rec.add_reason("unique(+1s steps)")
        prev_target = rec.target
    return records


def resolve_targets(records, options: Optional[Options] = None) -> List[Record]:
    """Run the whole pipeline and return the records in timeline order."""
    options = options or Options()
    ordered = order_records(records)
    apply_filename_override(ordered, options)
    assign_anchor_targets(ordered)
    infer_missing(ordered, options)
    make_unique(ordered, options)
    return ordered
