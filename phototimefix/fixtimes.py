import os
import sys
import argparse
import logging

from phototimefix import (
    __version__,
    configure_logging,
    add_target_args,
    resolve_target,
    ask_yes_no,
    ask_int,
    format_local_time,
    RunSummary,
)
from phototimefix.shottime import collect_records
from phototimefix.timeline import Options, ShotSource, resolve_targets
from phototimefix.writers import write_exif_if_missing, sync_file_times, sync_sidecar_times

# ------------------------------------------------------------
# options
# ------------------------------------------------------------

def options_from_args(args) -> Options:
    return Options(
        recursive=bool(args.recursive),
        include_hidden=bool(args.include_hidden),
        dry_run=bool(args.dry_run),
        enable_filename_fallback_for_shot=not args.no_filename_fallback,
        enable_filename_override_for_target=not args.no_filename_override,
        filename_override_days=args.override_days,
        anchor_gap_limit_days=args.gap_limit_days,
        one_side_step=not args.no_step,
        one_side_step_seconds=args.step_seconds,
        write_exif_if_missing=not args.no_exif,
        sync_file_times=not args.no_sync,
        sync_sidecars=bool(args.sidecars),
    )


def ask_options(opt: Options) -> Options:
    """Walk through every option interactively; the current values are the defaults."""
    opt.recursive = ask_yes_no("Recursive scan?", opt.recursive)
    opt.dry_run = ask_yes_no("Dry-run (no changes)?", opt.dry_run)
    opt.enable_filename_fallback_for_shot = ask_yes_no(
        "If EXIF missing, allow filename timestamp as shot time (anchor)?", opt.enable_filename_fallback_for_shot)
    opt.enable_filename_override_for_target = ask_yes_no(
        "If fs times drift too far from filename timestamp, override target by filename?", opt.enable_filename_override_for_target)
    opt.filename_override_days = ask_int("Filename override threshold days", opt.filename_override_days)
    opt.anchor_gap_limit_days = ask_int("Anchor gap limit days (too large -> no interpolation)", opt.anchor_gap_limit_days)
    opt.one_side_step = ask_yes_no(
        "When only one anchor exists, apply +1s steps to avoid same timestamp?", opt.one_side_step)
    opt.write_exif_if_missing = ask_yes_no(
        "Write EXIF shot time if missing (DateTimeOriginal/Digitized/Image.DateTime)?", opt.write_exif_if_missing)
    opt.sync_file_times = ask_yes_no("Sync filesystem times to target time?", opt.sync_file_times)
    return opt


# ------------------------------------------------------------
# report & apply
# ------------------------------------------------------------

def report_record(rec, summary: RunSummary | None = None) -> None:
    name = os.path.basename(rec.path)
    if rec.target is None:
        logging.info("[SKIP] no target time inferred", extra={'target': name})
        if summary is not None:
            summary.inc('skipped')
        return

    if summary is not None:
        summary.inc('anchors' if rec.has_anchor else 'filled')
        if rec.target_reason.startswith("filename override"):
            summary.inc('overrides')

    logging.info(
        "%s target %s (%s) | mtime %s | created %s",
        "[OK]  " if rec.has_anchor else "[FILL]",
        format_local_time(rec.target),
        rec.target_reason,
        format_local_time(rec.mtime),
        format_local_time(rec.created),
        extra={'target': name},
    )


def apply_record(rec, opt: Options, verbose=False, summary: RunSummary | None = None) -> list:
    """Write the resolved target to the file. Returns the list of actions taken."""
    if rec.target is None:
        return []

    actions = []
    # never rewrite a shot time the file's own metadata already provided
    metadata_had_shot = rec.anchor is not None and rec.anchor.source is ShotSource.METADATA
    if opt.write_exif_if_missing and not metadata_had_shot:
        written = write_exif_if_missing(rec.path, rec.target, dry_run=opt.dry_run, verbose=verbose)
        if written:
            actions.append("EXIF")
            if summary is not None:
                summary.inc('exif')
        elif written is None and summary is not None:
            summary.inc('errors')

    if opt.sync_file_times:
        if sync_file_times(rec.path, rec.target, dry_run=opt.dry_run, verbose=verbose):
            actions.append("File times")
            if summary is not None:
                summary.inc('timestamps')
        elif summary is not None:
            summary.inc('errors')

    if opt.sync_sidecars:
        if sync_sidecar_times(rec.path, rec.target, dry_run=opt.dry_run, verbose=verbose):
            actions.append("Sidecar(s)")
            if summary is not None:
                summary.inc('sidecars')

    logging.info("%s: %s",
                 "Would update" if opt.dry_run else "Updated",
                 ', '.join(actions) if actions else "Nothing",
                 extra={'target': os.path.basename(rec.path)})
    return actions


def process_target(target, opt: Options, verbose=False, summary: RunSummary | None = None):
    records = collect_records(target, opt)
    if summary is not None:
        summary.inc('total', len(records))
    if not records:
        logging.info("No media files found.", extra={'target': os.path.basename(target)})
        return []

    resolved = resolve_targets(records, opt)
    for rec in resolved:
        report_record(rec, summary=summary)
        apply_record(rec, opt, verbose=verbose, summary=summary)
    return resolved


# ------------------------------------------------------------
# CLI
# ------------------------------------------------------------

def build_parser():
    defaults = Options()
    parser = argparse.ArgumentParser(
        description=(
            "Reconstruct shot times for photos and videos. Files are ordered by modification time; "
            "EXIF/XMP or filename timestamps act as anchors and the files in between are "
            "interpolated. Writes missing EXIF dates and syncs filesystem times."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument('-v', '--version', action='version', version=f'phototimefix {__version__}')
    add_target_args(
        parser,
        folder_help="Batch mode: resolve all media in this folder (non-recursive by default; use --recursive to include subfolders).",
        single_help="Single mode: resolve exactly this file (only its own anchor can apply).",
        required=False,
    )
    parser.add_argument('-i', '--interactive', action='store_true', help='Ask for the path and every option interactively')
    parser.add_argument('--dry-run', action='store_true', help='Resolve and report without modifying files')
    parser.add_argument('--no-filename-fallback', action='store_true', help='Do not use filename timestamps as anchors when metadata is missing')
    parser.add_argument('--no-filename-override', action='store_true', help='Never let a filename timestamp override the target')
    parser.add_argument('--override-days', type=int, default=defaults.filename_override_days,
                        help='Drift (days) between filesystem and filename time that triggers the filename override')
    parser.add_argument('--gap-limit-days', type=int, default=defaults.anchor_gap_limit_days,
                        help='Anchor gap (days) above which files take the nearest anchor instead of interpolating')
    parser.add_argument('--no-step', action='store_true', help='With a single bounding anchor, give every file the anchor time instead of stepping')
    parser.add_argument('--step-seconds', type=int, default=defaults.one_side_step_seconds, help='Step used for step-fill and uniqueness bumps')
    parser.add_argument('--no-exif', action='store_true', help='Do not write missing EXIF date tags')
    parser.add_argument('--no-sync', action='store_true', help='Do not update filesystem times')
    parser.add_argument('--sidecars', action='store_true', help='Also update the times of sidecar files (.xmp, .aae, ...)')
    return parser


def _ask_target(args):
    raw = input("Input file or folder path (you can paste / drag-drop):\n> ").strip().strip('"').strip("'")
    if not raw:
        logging.error("No path provided.", extra={'target': 'INPUT'})
        sys.exit(1)
    if os.path.isfile(raw):
        args.single = raw
    else:
        args.folder = raw


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    if not args.folder and not args.single:
        if not args.interactive:
            parser.error("one of the arguments -f/--folder -s/--single is required")
        _ask_target(args)

    mode_sel, target = resolve_target(args, single_expect="file", folder_expect="folder")

    opt = options_from_args(args)
    if args.interactive:
        # first interactive run should be a safe preview of the whole tree
        opt.recursive = True
        opt.dry_run = True
        ask_options(opt)
    try:
        opt.validate()
    except ValueError as e:
        logging.error("%s", e, extra={'target': 'OPTIONS'})
        sys.exit(1)

    s = RunSummary()
    s.set('target_mode', mode_sel)
    s.set('dry_run', opt.dry_run)
    s.set('recursive', opt.recursive)

    if args.verbose:
        logging.debug("Target %s in %s mode: %s", target, mode_sel, opt, extra={'target': os.path.basename(target)})

    process_target(target, opt, verbose=args.verbose, summary=s)

    total = s.get('total', 0)
    anchors = s.get('anchors', 0)
    filled = s.get('filled', 0)
    skipped = s.get('skipped', 0)
    overrides = s.get('overrides', 0)
    exif = s.get('exif', 0)
    timestamps = s.get('timestamps', 0)
    sidecars = s.get('sidecars', 0)
    errors = s.get('errors', 0)

    line1 = (f"Files {total}: {anchors} with shot time, {filled} filled, {skipped} skipped (no target). "
             f"Filename overrides: {overrides}. Duration {s.duration_hms}.")
    if opt.dry_run:
        line2 = "Dry-run mode: no changes made."
    else:
        line2 = f"EXIF updated (missing-only): {exif}. Filesystem times updated: {timestamps}. Sidecars: {sidecars}. Errors: {errors}."

    s.emit_lines([line1, line2], json_extra={
        'total': total,
        'anchors': anchors,
        'filled': filled,
        'skipped': skipped,
        'overrides': overrides,
        'exif': exif,
        'timestamps': timestamps,
        'sidecars': sidecars,
        'errors': errors,
        'target': target,
    })


if __name__ == "__main__":
    main()
