"""Delta folder ingestion pipeline components."""

from .active_lists import filter_active, partition_active
from .executor import CallerRunsExecutor
from .filenames import FilenameDecodeError, decode_filename, encode_filename, get_info
from .pipeline import DeltaFolderError, DeltaFolderIndexer, MailParserProtocol, discover

__all__ = [
    "CallerRunsExecutor",
    "DeltaFolderError",
    "DeltaFolderIndexer",
    "FilenameDecodeError",
    "MailParserProtocol",
    "decode_filename",
    "discover",
    "encode_filename",
    "filter_active",
    "get_info",
    "partition_active",
]
