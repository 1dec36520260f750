"""Resource and upload resolution."""

from veritas.io.resources import ResolvedResource, is_likely_local_path, read_resource_file, resolve_resource_input
from veritas.io.uploads import UPLOAD_MARKER, UploadRecord, UploadRegistry, parse_upload_markers

__all__ = [
    "ResolvedResource",
    "is_likely_local_path",
    "read_resource_file",
    "resolve_resource_input",
    "UPLOAD_MARKER",
    "UploadRecord",
    "UploadRegistry",
    "parse_upload_markers",
]
