import pytest

from phototimefix.timeline import (
    Options,
    ShotSource,
    order_records,
    apply_filename_override,
    assign_anchor_targets,
    iter_segments,
    infer_missing,
    make_unique,
    resolve_targets,
)
from conftest import anchored, missing

DAY = 86400


def _targets(records):
    return [r.target for r in records]


def _bounded(prev_t, next_t, m):
    """prev anchor, m records without anchor, next anchor; mtimes already in order."""
    recs = [anchored("a.jpg", 1, prev_t)]
    recs += [missing(f"m{i}.jpg", 2 + i) for i in range(m)]
    recs.append(anchored("z.jpg", 100, next_t))
    return recs


# --- ordering ---

def test_order_by_mtime_then_path():
    recs = [missing("b.jpg", 5), missing("c.jpg", 1), missing("a.jpg", 5)]
    ordered = order_records(recs)
    assert [r.path for r in ordered] == ["c.jpg", "a.jpg", "b.jpg"]
    assert [r.path for r in order_records(reversed(recs))] == ["c.jpg", "a.jpg", "b.jpg"]


# --- override ---

def test_override_with_single_reference_time():
    opt = Options(filename_override_days=7)
    far = missing("far.jpg", mtime=100 * DAY, filename_time=10 * DAY)
    near = missing("near.jpg", mtime=10 * DAY + 3600, filename_time=10 * DAY)
    apply_filename_override([far, near], opt)
    assert far.target == 10 * DAY
    assert far.target_reason == "filename override (mtime too far)"
    assert near.target is None


def test_override_needs_both_reference_times_to_drift():
    opt = Options(filename_override_days=7)
    one_close = missing("a.jpg", mtime=100 * DAY, created=10 * DAY, filename_time=10 * DAY)
    both_far = missing("b.jpg", mtime=100 * DAY, created=90 * DAY, filename_time=10 * DAY)
    apply_filename_override([one_close, both_far], opt)
    assert one_close.target is None
    assert both_far.target == 10 * DAY
    assert both_far.target_reason == "filename override (fs create/write too far)"


def test_override_threshold_is_strict():
    opt = Options(filename_override_days=7)
    rec = missing("a.jpg", mtime=17 * DAY, filename_time=10 * DAY)
    apply_filename_override([rec], opt)
    assert rec.target is None


def test_override_preempts_metadata_anchor():
    rec = anchored("a.jpg", mtime=500 * DAY, shot=400 * DAY, filename_time=10 * DAY)
    resolve_targets([rec], Options())
    assert rec.target == 10 * DAY
    assert rec.anchor.time == 400 * DAY


def test_override_disabled():
    rec = missing("a.jpg", mtime=500 * DAY, filename_time=10 * DAY)
    apply_filename_override([rec], Options(enable_filename_override_for_target=False))
    assert rec.target is None


# --- default assignment ---

def test_anchor_targets_reasons():
    meta = anchored("a.jpg", 1, 50)
    name = anchored("b.jpg", 2, 60, source=ShotSource.FILENAME)
    none = missing("c.jpg", 3)
    assign_anchor_targets([meta, name, none])
    assert (meta.target, meta.target_reason) == (50, "shot from metadata")
    assert (name.target, name.target_reason) == (60, "shot from filename")
    assert none.target is None


# --- segments ---

def test_iter_segments_bounds():
    recs = [missing("a", 1), anchored("b", 2, 20), missing("c", 3), missing("d", 4), anchored("e", 5, 50), missing("f", 6)]
    segs = [(s.start, s.length, s.prev_time, s.next_time) for s in iter_segments(recs)]
    assert segs == [(0, 1, None, 20), (2, 2, 20, 50), (5, 1, 50, None)]


def test_segments_ignore_override_targets():
    recs = _bounded(0, 10, 3)
    recs[2].target = 999
    recs[2].target_reason = "filename override (mtime too far)"
    infer_missing(recs, Options())
    assert _targets(recs[1:4]) == [2, 999, 7]


# --- gap inference regimes ---

def test_interpolation_between_anchors():
    recs = _bounded(0, 10, 3)
    assign_anchor_targets(recs)
    infer_missing(recs, Options())
    assert _targets(recs) == [0, 2, 5, 7, 10]
    assert recs[1].target_reason == "interpolated between anchors"


def test_interpolation_truncates_toward_zero_for_reversed_anchors():
    recs = _bounded(10, 0, 3)
    infer_missing(recs, Options())
    assert _targets(recs[1:4]) == [8, 5, 3]


def test_close_anchors_step_fill():
    recs = _bounded(0, 2, 5)
    infer_missing(recs, Options(one_side_step_seconds=1))
    assert _targets(recs[1:6]) == [1, 2, 3, 4, 5]
    assert recs[1].target_reason == "anchors too close -> step-filled"


def test_close_anchors_step_fill_follows_direction():
    recs = _bounded(10, 8, 3)
    infer_missing(recs, Options())
    assert _targets(recs[1:4]) == [9, 8, 7]


def test_equal_anchors_step_forward():
    recs = _bounded(10, 10, 2)
    infer_missing(recs, Options())
    assert _targets(recs[1:3]) == [11, 12]


def test_gap_too_large_nearest_fill():
    recs = _bounded(0, 1_000_000_000, 4)
    opt = Options(anchor_gap_limit_days=90)
    assert opt.anchor_gap_limit_seconds == 7_776_000
    infer_missing(recs, opt)
    assert _targets(recs[1:5]) == [0, 0, 1_000_000_000, 1_000_000_000]
    assert recs[1].target_reason == "gap too large -> nearest anchor fill"


def test_gap_too_large_odd_segment_favours_next():
    recs = _bounded(0, 1_000_000_000, 3)
    infer_missing(recs, Options())
    assert _targets(recs[1:4]) == [0, 1_000_000_000, 1_000_000_000]


def test_only_prev_anchor():
    recs = [anchored("a", 1, 100)] + [missing(f"m{i}", 2 + i) for i in range(3)]
    infer_missing(recs, Options())
    assert _targets(recs[1:]) == [101, 102, 103]
    assert recs[1].target_reason == "only prev anchor -> filled +1s steps"


def test_only_next_anchor():
    recs = [missing(f"m{i}", 1 + i) for i in range(3)] + [anchored("z", 10, 500)]
    infer_missing(recs, Options())
    assert _targets(recs[:3]) == [497, 498, 499]
    assert recs[0].target_reason == "only next anchor -> filled -1s steps"


def test_one_sided_custom_step():
    recs = [anchored("a", 1, 100)] + [missing(f"m{i}", 2 + i) for i in range(2)]
    infer_missing(recs, Options(one_side_step_seconds=5))
    assert _targets(recs[1:]) == [105, 110]


def test_no_anchors_leaves_targets_unset():
    recs = [missing(f"m{i}", i) for i in range(4)]
    resolve_targets(recs, Options())
    assert _targets(recs) == [None] * 4
    assert all(r.target_reason == "" for r in recs)


def test_gap_inference_never_overwrites_defaults():
    recs = _bounded(0, 10, 3)
    assign_anchor_targets(recs)
    before = (recs[0].target, recs[-1].target)
    infer_missing(recs, Options())
    assert (recs[0].target, recs[-1].target) == before


# --- uniqueness ---

def test_unique_bumps_inferred_behind_anchor():
    recs = [anchored("a", 1, 100), missing("b", 2)]
    assign_anchor_targets(recs)
    recs[1].target = 99
    recs[1].target_reason = "interpolated between anchors"
    make_unique(recs, Options())
    assert recs[1].target == 101
    assert recs[1].target_reason == "interpolated between anchors + unique(+1s steps)"


def test_unique_never_moves_anchor_records():
    recs = [missing("a", 1), anchored("b", 2, 50)]
    assign_anchor_targets(recs)
    recs[0].target = 80
    make_unique(recs, Options())
    assert _targets(recs) == [80, 50]


def test_unique_skips_unresolved_records():
    recs = [anchored("a", 1, 100), missing("b", 2), missing("c", 3)]
    assign_anchor_targets(recs)
    recs[2].target = 100
    make_unique(recs, Options())
    assert _targets(recs) == [100, None, 101]


def test_flat_one_sided_fill_is_made_unique():
    recs = [anchored("a", 1, 100)] + [missing(f"m{i}", 2 + i) for i in range(3)]
    resolve_targets(recs, Options(one_side_step=False))
    assert _targets(recs) == [100, 101, 102, 103]
    assert recs[1].target_reason == "only prev anchor -> filled + unique(+1s steps)"


def test_flat_fill_before_first_anchor_keeps_first():
    recs = [missing(f"m{i}", 1 + i) for i in range(3)] + [anchored("z", 10, 500)]
    resolved = resolve_targets(recs, Options(one_side_step=False))
    assert _targets(resolved) == [500, 501, 502, 500]
    assert resolved[0].target_reason == "only next anchor -> filled"


# --- whole pipeline ---

def test_resolve_targets_orders_and_fills():
    recs = [
        anchored("c.jpg", 30, 1000),
        missing("b.jpg", 20),
        anchored("a.jpg", 10, 900),
    ]
    resolved = resolve_targets(recs)
    assert [r.path for r in resolved] == ["a.jpg", "b.jpg", "c.jpg"]
    assert _targets(resolved) == [900, 950, 1000]


def test_second_pass_is_idempotent():
    recs = _bounded(0, 2, 5) + [missing("tail1", 200), missing("tail2", 201)]
    opt = Options()
    resolved = resolve_targets(recs, opt)
    snapshot = [(r.target, r.target_reason) for r in resolved]
    infer_missing(resolved, opt)
    make_unique(resolved, opt)
    assert [(r.target, r.target_reason) for r in resolved] == snapshot


# --- options ---

@pytest.mark.parametrize("kwargs", [
    {"filename_override_days": -1},
    {"anchor_gap_limit_days": -1},
    {"one_side_step_seconds": 0},
])
def test_options_validate_rejects(kwargs):
    with pytest.raises(ValueError):
        Options(**kwargs).validate()


def test_options_defaults():
    opt = Options().validate()
    assert opt.filename_override_seconds == 7 * DAY
    assert opt.anchor_gap_limit_seconds == 90 * DAY
