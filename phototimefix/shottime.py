import os
import re
import time
import datetime
import logging
import subprocess
from PIL import Image, ExifTags

from phototimefix import MEDIA_EXTENSIONS, VIDEO_EXTENSIONS, SECONDS_PER_DAY, iter_files
from phototimefix.timeline import Anchor, Options, Record, ShotSource


EXIF_DATE_TAGS = [
    (ExifTags.IFD.Exif, ExifTags.Base.DateTimeOriginal),
    (ExifTags.IFD.Exif, ExifTags.Base.DateTimeDigitized),
    (None, ExifTags.Base.DateTime),
]
XMP_DATE_KEYS = ["exif:DateTimeOriginal", "xmp:CreateDate", "photoshop:DateCreated"]
XMP_PACKET_TAG = 700

FILENAME_PATTERNS = [
    re.compile(r"(\d{4})(\d{2})(\d{2})[_-]?(\d{2})(\d{2})(\d{2})"),
    re.compile(r"(\d{4})-(\d{2})-(\d{2})[_\s-]?(\d{2})[-_]?(\d{2})[-_]?(\d{2})"),
]





# ========================================
# time helpers
# ========================================
def plausible(ts):
    """Accept times from 1980-01-01 (local) up to one day in the future."""
    if ts is None:
        return False
    earliest = datetime.datetime(1980, 1, 1).timestamp()
    return earliest <= ts <= time.time() + SECONDS_PER_DAY


def _local_seconds(dt):
    """POSIX seconds for a naive local datetime, or None where the platform cannot map it."""
    try:
        return int(dt.timestamp())
    except (ValueError, OverflowError, OSError):
        return None


def normalize_date_string(raw):
    s = raw.strip().replace('T', ' ')
    if len(s) >= 10 and s[4] == '-' and s[7] == '-':
        s = f"{s[:4]}:{s[5:7]}:{s[8:]}"
    dot = s.find('.')
    if dot >= 17:
        s = s[:19]
    # timezone suffix right after the seconds
    if len(s) >= 20 and s[19] in 'Z+-':
        s = s[:19]
    return s


def parse_datetime_string(raw):
    """Parse an EXIF/XMP/ISO date string as local time. Returns POSIX seconds or None."""
    if isinstance(raw, bytes):
        raw = raw.decode('ascii', errors='ignore')
    s = normalize_date_string(str(raw).replace('\x00', ''))
    if len(s) < 19 or s.startswith("0000:00:00"):
        return None
    try:
        return _local_seconds(datetime.datetime.strptime(s[:19], "%Y:%m:%d %H:%M:%S"))
    except ValueError:
        return None





# ========================================
# filename timestamps
# ========================================
def parse_filename_time(file_path):
    """
    Find a timestamp in the file stem, e.g. Screenshot_20211230_215425,
    20211230215425 or 2021-12-30_21-54-25.
    """
    stem = os.path.splitext(os.path.basename(file_path))[0]
    for pattern in FILENAME_PATTERNS:
        match = pattern.search(stem)
        if not match:
            continue
        try:
            parsed = datetime.datetime(*(int(g) for g in match.groups()))
        except ValueError:
            continue
        ts = _local_seconds(parsed)
        if plausible(ts):
            return ts
    return None





# ========================================
# metadata timestamps
# ========================================
def _xmp_packet(img, exif):
    packet = img.info.get("xmp") or img.info.get("XML:com.adobe.xmp") or exif.get(XMP_PACKET_TAG)
    if isinstance(packet, bytes):
        packet = packet.decode('utf-8', errors='ignore')
    return packet or ""


def find_xmp_date(packet):
    for key in XMP_DATE_KEYS:
        escaped = re.escape(key)
        match = (re.search(rf'{escaped}="([^"]+)"', packet)
                 or re.search(rf'<{escaped}>([^<]+)</{escaped}>', packet))
        if not match:
            continue
        ts = parse_datetime_string(match.group(1))
        if plausible(ts):
            return ts
    return None


def read_image_shot_time(file_path):
    with Image.open(file_path) as img:
        exif = img.getexif()
        for ifd, tag in EXIF_DATE_TAGS:
            values = exif.get_ifd(ifd) if ifd is not None else exif
            if tag not in values:
                continue
            ts = parse_datetime_string(values[tag])
            if plausible(ts):
                return ts
        return find_xmp_date(_xmp_packet(img, exif))


def read_video_shot_time(file_path):
    try:
        result = subprocess.run(
            ["ffprobe", "-v", "error",
             "-show_entries", "format_tags=creation_time",
             "-of", "default=noprint_wrappers=1:nokey=0", file_path],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True
        )
    except FileNotFoundError:
        logging.debug("ffprobe not available", extra={'target': os.path.basename(file_path)})
        return None

    for line in result.stdout.splitlines():
        if 'creation_time=' not in line:
            continue
        raw_date = line.split('=', 1)[1].strip()
        try:
            ts = int(datetime.datetime.fromisoformat(raw_date.replace('Z', '+00:00')).timestamp())
        except (ValueError, OverflowError):
            ts = parse_datetime_string(raw_date)
        if plausible(ts):
            return ts
    return None


def read_shot_time(file_path):
    """Best shot time from embedded metadata, or None."""
    try:
        if os.path.splitext(file_path)[1].lower() in VIDEO_EXTENSIONS:
            return read_video_shot_time(file_path)
        return read_image_shot_time(file_path)
    except Exception as e:
        logging.debug(f"no readable metadata: {e}", extra={'target': os.path.basename(file_path)})
        return None





# ========================================
# collecting records
# ========================================
def read_reference_times(file_path):
    """Returns (mtime, created). created is None where the OS keeps no creation time."""
    stat = os.stat(file_path)
    created = getattr(stat, 'st_birthtime', None)
    if created is None and os.name == 'nt':
        created = stat.st_ctime
    return int(stat.st_mtime), (int(created) if created is not None else None)


def choose_anchor(file_path, filename_time, options):
    shot = read_shot_time(file_path)
    if shot is not None:
        return Anchor(shot, ShotSource.METADATA)
    if options.enable_filename_fallback_for_shot and filename_time is not None:
        return Anchor(filename_time, ShotSource.FILENAME)
    return None


def build_record(file_path, options):
    mtime, created = read_reference_times(file_path)
    filename_time = parse_filename_time(file_path)
    return Record(
        path=file_path,
        mtime=mtime,
        created=created,
        filename_time=filename_time,
        anchor=choose_anchor(file_path, filename_time, options),
    )


def collect_records(target, options: Options):
    """Build a Record for every media file at target (a file or a folder)."""
    if os.path.isfile(target):
        paths = [target] if os.path.splitext(target)[1].lower() in MEDIA_EXTENSIONS else []
    else:
        paths = iter_files(
            target,
            recursive=options.recursive,
            include_hidden=options.include_hidden,
            ext_filter=set(MEDIA_EXTENSIONS),
        )

    records = []
    for path in paths:
        try:
            records.append(build_record(path, options))
        except (OSError, ValueError, OverflowError) as e:
            logging.error("could not read file: %s", e, extra={'target': os.path.basename(path)})
            continue
        logging.debug("anchor: %s", records[-1].anchor, extra={'target': os.path.basename(path)})
    return records
