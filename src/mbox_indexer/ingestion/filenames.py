"""Encoding of mail archive URLs into delta folder file names.

The upstream archiver names every delta file after the URL of the mail in the
public Mailman archive, encoded with the URL-safe base64 alphabet so the name
is valid on any filesystem. The URL path carries the mailing list name, which
in turn gives the project and list type used for routing.
"""

from __future__ import annotations

import base64
import binascii
import re
from urllib.parse import urlsplit

from ..core.models import ArchiveUrlInfo

_FILENAME_ALPHABET = re.compile(r"[A-Za-z0-9_-]+={0,2}")
_ARCHIVE_PATH = re.compile(
    r"^(?:/.*)?/pipermail/(?P<list>[A-Za-z0-9][A-Za-z0-9._+-]*)/(?P<period>[^/]+)/(?P<message>[^/]+)$"
)


class FilenameDecodeError(ValueError):
    """Raised when a delta file name does not encode a valid archive URL."""


def encode_filename(url: str) -> str:
    """Return the file name the archiver uses for ``url``."""
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii")


def decode_filename(name: str) -> str:
    """Recover the archive URL from a delta file name."""
    if not name or not _FILENAME_ALPHABET.fullmatch(name):
        raise FilenameDecodeError(f"Not a filename-safe base64 name: {name!r}")
    padded = name.rstrip("=")
    padded += "=" * (-len(padded) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise FilenameDecodeError(f"Cannot decode file name {name!r}") from exc


def parse_archive_url(url: str) -> ArchiveUrlInfo:
    """Split an archive URL into project and list type.

    ``http://lists.jboss.org/pipermail/hibernate-dev/2013-May/000123.html``
    gives project ``hibernate`` and list type ``dev``.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise FilenameDecodeError(f"Not an absolute URL: {url!r}")
    match = _ARCHIVE_PATH.match(parts.path)
    if match is None:
        raise FilenameDecodeError(f"Unexpected archive path in URL: {url!r}")

    list_name = match.group("list")
    project, separator, list_type = list_name.rpartition("-")
    if not separator or not project:
        return ArchiveUrlInfo(source_url=url, project=list_name, list_type=None)
    return ArchiveUrlInfo(source_url=url, project=project, list_type=list_type or None)


def get_info(name: str) -> ArchiveUrlInfo:
    """Decode ``name`` and parse the resulting archive URL."""
    return parse_archive_url(decode_filename(name))


__all__ = [
    "FilenameDecodeError",
    "decode_filename",
    "encode_filename",
    "get_info",
    "parse_archive_url",
]
