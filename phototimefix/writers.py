import os
import time
import logging
import piexif

from phototimefix import EXIF_WRITABLE_EXTENSIONS, SIDECAR_EXTENSIONS, format_local_time


def _exif_string(ts):
    return time.strftime("%Y:%m:%d %H:%M:%S", time.localtime(ts)).encode()


def write_exif_if_missing(file_path, ts, dry_run=False, verbose=False):
    """
    Add DateTimeOriginal, DateTimeDigitized and Image.DateTime where the file
    lacks them. Existing values are left alone. Returns True if anything was
    (or, in a dry run, would be) written, False if nothing was missing or the
    format is not writable, and None if the write failed.
    """
    name = os.path.basename(file_path)
    if os.path.splitext(file_path)[1].lower() not in EXIF_WRITABLE_EXTENSIONS:
        if verbose:
            logging.debug("EXIF not writable for this format", extra={'target': name})
        return False
    try:
        try:
            exif_dict = piexif.load(file_path)
        except Exception:
            exif_dict = {"0th": {}, "Exif": {}, "GPS": {}, "1st": {}, "thumbnail": None}
        stamp = _exif_string(ts)
        missing = []
        if piexif.ExifIFD.DateTimeOriginal not in exif_dict["Exif"]:
            missing.append(("Exif", piexif.ExifIFD.DateTimeOriginal))
        if piexif.ExifIFD.DateTimeDigitized not in exif_dict["Exif"]:
            missing.append(("Exif", piexif.ExifIFD.DateTimeDigitized))
        if piexif.ImageIFD.DateTime not in exif_dict["0th"]:
            missing.append(("0th", piexif.ImageIFD.DateTime))
        if not missing:
            return False
        if verbose:
            logging.debug(f"{'Would write' if dry_run else 'Writing'} {len(missing)} EXIF date tag(s): {stamp.decode()}", extra={'target': name})
        if dry_run:
            return True
        for ifd, tag in missing:
            exif_dict[ifd][tag] = stamp
        piexif.insert(piexif.dump(exif_dict), file_path)
        return True
    except Exception as e:
        logging.error("Failed to write EXIF date: %s", e, extra={'target': name})
        return None


def sync_file_times(file_path, ts, dry_run=False, verbose=False):
    if verbose:
        logging.debug(f"{'Would set' if dry_run else 'Setting'} file times to {format_local_time(ts)}", extra={'target': os.path.basename(file_path)})
    try:
        if not dry_run:
            os.utime(file_path, (ts, ts))
        return True
    except OSError as e:
        logging.error("Failed to set file dates: %s", e, extra={'target': os.path.basename(file_path)})
        return False


def sync_sidecar_times(file_path, ts, dry_run=False, verbose=False):
    """Apply the same time to sidecars named IMG_1.xmp or IMG_1.JPG.xmp."""
    base_path, file_ext = os.path.splitext(file_path)
    updated = False
    for ext in SIDECAR_EXTENSIONS:
        for sidecar_path in (f"{base_path}{ext}", f"{base_path}{file_ext}{ext}"):
            if not os.path.exists(sidecar_path):
                continue
            if sync_file_times(sidecar_path, ts, dry_run=dry_run, verbose=verbose):
                updated = True
    return updated
