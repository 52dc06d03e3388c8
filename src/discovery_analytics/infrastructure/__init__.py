from .memory_repository import InMemoryEventRepository
from .parquet_archive import ParquetEventArchive
from .json_snapshot_provider import JsonProjectSnapshotProvider
from .identity import StaticIdentityProvider
from .logging_config import configure_logging, LayerLoggerAdapter, layer_logger

__all__ = [
    "InMemoryEventRepository",
    "ParquetEventArchive",
    "JsonProjectSnapshotProvider",
    "StaticIdentityProvider",
    "configure_logging",
    "LayerLoggerAdapter",
    "layer_logger",
]
