import os
import datetime
import pytest
import piexif
from PIL import Image

from phototimefix.timeline import Anchor, Record, ShotSource


def local_ts(*args):
    return int(datetime.datetime(*args).timestamp())


def exif_string(*args):
    return datetime.datetime(*args).strftime("%Y:%m:%d %H:%M:%S").encode()


@pytest.fixture
def make_jpeg(tmp_path):
    """Factory: writes a small JPEG, optionally with DateTimeOriginal, and sets its mtime."""
    def _make(name, shot=None, mtime=None):
        path = tmp_path / name
        img = Image.new("RGB", (8, 8), color=(120, 80, 40))
        if shot is not None:
            exif_bytes = piexif.dump({
                "0th": {},
                "Exif": {piexif.ExifIFD.DateTimeOriginal: exif_string(*shot)},
                "GPS": {}, "1st": {}, "thumbnail": None,
            })
            img.save(path, "JPEG", exif=exif_bytes)
        else:
            img.save(path, "JPEG")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path
    return _make


def anchored(path, mtime, shot, source=ShotSource.METADATA, **kwargs):
    return Record(path=path, mtime=mtime, anchor=Anchor(shot, source), **kwargs)


def missing(path, mtime, **kwargs):
    return Record(path=path, mtime=mtime, **kwargs)
