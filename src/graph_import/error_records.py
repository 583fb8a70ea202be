"""Spill files for records of a failed import batch."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Union

from schema.migration import Record

logger = logging.getLogger(__name__)


class ErrorRecordsWriter:
    """Writes target records as JSON lines, one file per failed batch."""

    def __init__(self, directory: Union[str, Path]):
        """Write files under ``directory`` (created on first write)."""
        self.directory = Path(directory)

    def write(self, label: str, records: Iterable[Record]) -> Optional[str]:
        """Write records and return the file path, or None when there are none."""
        rows = [record.to_dict() for record in records]
        if not rows:
            return None

        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        safe_label = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in label)
        path = self.directory / f"{safe_label}_{stamp}_{uuid.uuid4().hex[:8]}.jsonl"

        with open(path, "w", encoding="utf-8") as f:
            for row in rows:
                f.write(json.dumps(row, ensure_ascii=False, default=str))
                f.write("\n")

        logger.info("Wrote %d error records for %s to %s", len(rows), label, path)
        return str(path)
