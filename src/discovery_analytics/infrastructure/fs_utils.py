import os
from dataclasses import dataclass
from datetime import date

@dataclass
class PartitionPaths:
    base_dir: str
    day: date

    @property
    def parquet_dir(self) -> str:
        return os.path.join(
            self.base_dir,
            f"anno={self.day.year}",
            f"mese={self.day.month:02d}",
            f"giorno={self.day.day:02d}"
        )

    def next_file(self) -> str:
        os.makedirs(self.parquet_dir, exist_ok=True)
        existing = [name for name in os.listdir(self.parquet_dir) if name.endswith(".parquet")]
        return os.path.join(self.parquet_dir, f"events-{len(existing):05d}.parquet")

def folder_size_mb(path: str) -> float:
    total_bytes = 0
    if not os.path.exists(path):
        return 0.0
    for root, _, files in os.walk(path):
        for filename in files:
            try:
                total_bytes += os.path.getsize(os.path.join(root, filename))
            except OSError:
                pass
    return total_bytes / (1024 * 1024)
