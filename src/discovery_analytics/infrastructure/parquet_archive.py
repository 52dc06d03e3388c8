import json
import logging
import os
from dataclasses import asdict
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import polars as pl

from ..application.errors import ArchiveError
from ..domain.entities import StoredEvent
from ..domain.interfaces import IEventArchive
from ..domain.utils import calendar_day
from .fs_utils import PartitionPaths, folder_size_mb

ARCHIVE_SCHEMA = {
    "event_id": pl.Int64,
    "user_id": pl.Utf8,
    "project_id": pl.Int64,
    "type": pl.Utf8,
    "timestamp": pl.Datetime("us", "UTC"),
    "metadata": pl.Utf8,
}

def _metadata_json(metadata: Any) -> str:
    payload = {
        key: value.value if isinstance(value, Enum) else value
        for key, value in asdict(metadata).items()
    }
    return json.dumps(payload, ensure_ascii=False)

class ParquetEventArchive(IEventArchive):
    """
    Archivio degli eventi rimossi dalla retention, partizionato per giorno
    in stile hive (anno=/mese=/giorno=) e compresso zstd.
    """

    def __init__(self, base_dir: str, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.base_dir = base_dir
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def archive(self, events: List[StoredEvent]) -> int:
        by_day: Dict[date, List[tuple]] = {}
        for stored in events:
            event = stored.event
            by_day.setdefault(calendar_day(event.timestamp), []).append((
                stored.event_id,
                event.user_id,
                event.project_id,
                event.type.value,
                event.timestamp,
                _metadata_json(event.metadata),
            ))

        written = 0
        for day, rows in sorted(by_day.items()):
            try:
                target = PartitionPaths(self.base_dir, day).next_file()
                frame = pl.DataFrame(rows, schema=ARCHIVE_SCHEMA, orient="row")
                frame.write_parquet(target, compression="zstd")
            except (OSError, pl.exceptions.PolarsError) as error:
                raise ArchiveError(f"Scrittura dell'archivio fallita per {day.isoformat()}") from error
            written += len(rows)
            self.logger.info(f"Archiviati {len(rows)} eventi in {target}")
        return written

    def load(self, day: date) -> pl.DataFrame:
        partition = PartitionPaths(self.base_dir, day).parquet_dir
        if not os.path.isdir(partition):
            return pl.DataFrame(schema=ARCHIVE_SCHEMA)

        try:
            return (
                pl.scan_parquet(os.path.join(partition, "*.parquet"))
                .sort(["timestamp", "event_id"])
                .collect()
            )
        except (OSError, pl.exceptions.PolarsError) as error:
            raise ArchiveError(f"Lettura dell'archivio fallita per {day.isoformat()}") from error

    def size_mb(self) -> float:
        return folder_size_mb(self.base_dir)
