"""Stable identifiers for volumes and chapters.

A volume's identifier lives in a small JSON sidecar inside the volume
directory:

    {"uuid": "...", "volumeName": "卷一", "updatedAt": "2024-01-05T00:00:00.000Z"}

The identifier is reused for as long as the recorded name matches the
directory name. Renaming the directory produces a new identifier.
"""

import json
import uuid
from pathlib import Path

from content_index.config import DEFAULT_IDENTITY_FILE
from content_index.console import warn
from content_index.dates import utc_now
from content_index.header_codec import write_text_atomic


def generate_id():
    """Return a fresh random UUID string."""
    return str(uuid.uuid4())


def _read_record(record_path):
    """Return the stored record, or None if the file is corrupt.

    OSError propagates to the caller.
    """
    with open(record_path, "rb") as f:
        raw = f.read()
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        warn(f"Corrupt volume identity file {record_path}: {e}")
        return None
    if not isinstance(data, dict) or not isinstance(data.get("uuid"), str) or not data["uuid"]:
        warn(f"Corrupt volume identity file {record_path}: missing uuid")
        return None
    return data


def resolve_volume_identity(volume_path, volume_name, id_file=DEFAULT_IDENTITY_FILE):
    """Get the stable identifier of a volume, creating it if needed.

    Side effect: writes the identity sidecar when a new identifier is issued.
    On any I/O failure a fresh identifier is returned without persisting it.
    """
    record_path = Path(volume_path) / id_file
    try:
        if record_path.exists():
            record = _read_record(record_path)
            if record is not None and record.get("volumeName") == volume_name:
                return record["uuid"]

        new_id = generate_id()
        write_text_atomic(record_path, json.dumps({
            "uuid": new_id,
            "volumeName": volume_name,
            "updatedAt": utc_now(),
        }, ensure_ascii=False))
        return new_id
    except OSError as e:
        warn(f"Failed to resolve volume identity for {volume_path}: {e}")
        return generate_id()
