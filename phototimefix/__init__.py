from .__version__ import __version__

import os
import sys
import datetime
import logging
from collections import defaultdict
from datetime import timedelta
from colorama import Fore, Style, init





# ========================================
# logs with color
# ========================================
init(autoreset=True)
class ColoredFormatter(logging.Formatter):
    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA
    }

    def format(self, record):
        if not hasattr(record, 'target'):
            record.target = '-'  # Default value if 'target' is not provided
        log_color = self.COLORS.get(record.levelname, '')
        log_format = (
            f"{log_color}[%(levelname)s]\t%(target)s:\t%(message)s{Style.RESET_ALL}"
        )
        formatter = logging.Formatter(log_format)
        return formatter.format(record)
handler = logging.StreamHandler()
handler.setFormatter(ColoredFormatter())
logging.basicConfig(level=logging.INFO, handlers=[handler])


def configure_logging(verbose: bool = False):
    """Route the root logger through the colored handler; DEBUG when verbose."""
    root = logging.getLogger()
    if handler not in root.handlers:
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)




# ========================================
# definitions
# ========================================
IMAGE_EXTENSIONS = ['.jpg', '.jpeg', '.tif', '.tiff', '.png', '.heic', '.webp', '.dng', '.bmp', '.gif']
VIDEO_EXTENSIONS = ['.mp4', '.mov', '.m4v', '.3gp', '.3g2', '.avi', '.mkv', '.wmv']
MEDIA_EXTENSIONS = IMAGE_EXTENSIONS + VIDEO_EXTENSIONS
SIDECAR_EXTENSIONS = ['.aae', '.xmp', '.json', '.srt', '.thm']
# piexif can only insert into these containers
EXIF_WRITABLE_EXTENSIONS = ['.jpg', '.jpeg', '.webp']
SECONDS_PER_DAY = 86400
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"





# ========================================
# target selection (folder / single file)
# ========================================
def add_target_args(parser, folder_help, single_help, required=True):
    group = parser.add_mutually_exclusive_group(required=required)
    group.add_argument('-f', '--folder', type=str, help=folder_help)
    group.add_argument('-s', '--single', type=str, help=single_help)
    parser.add_argument('-r', '--recursive', action='store_true', help='Include subfolders (batch mode)')
    parser.add_argument('--include-hidden', action='store_true', help='Include hidden files and folders')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose output')


def resolve_target(args, single_expect="file", folder_expect="folder"):
    """
    Returns ('single' | 'folder', absolute path). Exits with status 1 when the
    path does not exist or has the wrong kind.
    """
    if getattr(args, 'single', None):
        mode_sel, raw, expect = 'single', args.single, single_expect
    else:
        mode_sel, raw, expect = 'folder', args.folder, folder_expect

    path = os.path.abspath(os.path.expanduser(raw.strip().strip('"').strip("'")))
    ok = os.path.isfile(path) if expect == 'file' else os.path.isdir(path)
    if not ok:
        logging.error("Path not found or not a %s.", expect, extra={'target': os.path.basename(path) or path})
        sys.exit(1)
    return mode_sel, path


def iter_files(root, recursive=False, include_hidden=False, ext_filter=None):
    """Yield file paths below root in sorted order, filtered by extension."""
    try:
        entries = sorted(os.listdir(root))
    except OSError as e:
        logging.warning("cannot list folder: %s", e, extra={'target': os.path.basename(root)})
        return

    subdirs = []
    for name in entries:
        if not include_hidden and name.startswith('.'):
            continue
        path = os.path.join(root, name)
        if os.path.isdir(path):
            if recursive and not os.path.islink(path):
                subdirs.append(path)
            continue
        if not os.path.isfile(path):
            continue
        if ext_filter is not None and os.path.splitext(name)[1].lower() not in ext_filter:
            continue
        yield path

    for sub in subdirs:
        yield from iter_files(sub, recursive=recursive, include_hidden=include_hidden, ext_filter=ext_filter)





# ========================================
# interactive questions
# ========================================
def ask_yes_no(question, default):
    """Ask a [Y/n] question; blank input keeps the default."""
    answer = input(f"{question} {'[Y/n]' if default else '[y/N]'}: ").strip()
    if not answer:
        return default
    return answer[0].lower() in ('y', '1', 't')


def ask_int(question, default):
    """Ask for an integer; blank or unparseable input keeps the default."""
    answer = input(f"{question} (default {default}): ").strip()
    if not answer:
        return default
    try:
        return int(answer)
    except ValueError:
        return default





# ========================================
# time formatting
# ========================================
def format_local_time(ts) -> str:
    """Format POSIX seconds as local wall-clock time."""
    if ts is None:
        return "-"
    return datetime.datetime.fromtimestamp(ts).strftime(TIME_FORMAT)


def format_duration(seconds: float) -> str:
    """Return HH:MM:SS for a duration in seconds."""
    if seconds is None:
        return "00:00:00"
    td = timedelta(seconds=int(round(seconds)))
    total_seconds = int(td.total_seconds())
    h = total_seconds // 3600
    m = (total_seconds % 3600) // 60
    s = total_seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"

# ========================================
# summary helpers (end-of-run reporting)
# ========================================
class RunSummary:
    """
    Lightweight tracker for end-of-run summaries.

    Usage:
        s = RunSummary()
        s.inc('anchors', 3)
        # ... do your work ...
        s.emit_lines([
            f"Resolved {s['total']} files in {s.duration_hms}.",
        ], json_extra={'total': s['total']})
    """
    def __init__(self):
        self._t0 = datetime.datetime.now()
        self._t1 = None
        self.counters = defaultdict(int)   # any numeric counters
        self.metrics  = {}                 # arbitrary other values
        self.notes = []                    # misc strings (e.g., sample failures)

    # timing
    @property
    def duration_s(self) -> float:
        end = self._t1 or datetime.datetime.now()
        return (end - self._t0).total_seconds()

    @property
    def duration_hms(self) -> str:
        return format_duration(self.duration_s)

    def stop(self):
        self._t1 = datetime.datetime.now()

    # counters & metrics
    def inc(self, key: str, n: int = 1):
        self.counters[key] += n

    def set(self, key: str, value):
        self.metrics[key] = value

    def note(self, text: str):
        self.notes.append(text)

    def get(self, key: str, default=None):
        if key in self.counters:
            return self.counters[key]
        return self.metrics.get(key, default)

    def items(self):
        return self.counters.items()

    def __getitem__(self, key: str):
        # convenience for counters/metrics
        if key in self.counters:
            return self.counters[key]
        return self.metrics.get(key)

    # emission
    def emit_lines(self, lines, level=logging.INFO, json_extra=None):
        """Log one or more human lines, then a compact JSON line at DEBUG."""
        self.stop()
        for line in lines:
            logging.log(level, line, extra={'target': 'SUMMARY'})
        payload = {
            'duration_s': int(round(self.duration_s)),
            'counters': dict(self.counters),
            'metrics': self.metrics,
        }
        if self.notes:
            payload['notes'] = self.notes
        if json_extra:
            payload.update(json_extra)
        logging.debug("%s", payload, extra={'target': 'SUMMARY'})
