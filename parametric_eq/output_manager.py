from __future__ import annotations

import itertools
import logging
import secrets
import time
from pathlib import Path
from typing import Callable, Protocol

from .errors import EncodeError

LOG = logging.getLogger(__name__)

PROCESSED_MARKER = "_processed_"


class IdGenerator(Protocol):
    def __call__(self) -> str: ...


def random_hex_id() -> str:
    """8 random hex characters."""
    return secrets.token_hex(4)


class SequentialIds:
    """Deterministic ids (``00000001``, ``00000002``, ...) for tests and dry runs."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{next(self._counter):08x}"


class OutputManager:
    """Names, writes and expires processed output files in one working directory."""

    def __init__(
        self,
        output_dir: str | Path,
        id_generator: IdGenerator | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.output_dir = Path(output_dir)
        self.id_generator = id_generator or random_hex_id
        self.clock = clock

    def output_path_for(self, input_path: str | Path) -> Path:
        stem = Path(input_path).stem
        name = f"{stem}{PROCESSED_MARKER}{int(self.clock())}_{self.id_generator()}.wav"
        return self.output_dir / name

    def write(self, path: Path, data: bytes) -> int:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise EncodeError(f"Failed to write output file {path}: {exc}") from exc
        return len(data)

    def discard(self, path: Path) -> None:
        """Remove a partially written output, if any."""
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOG.warning("Could not remove partial output %s: %s", path, exc)

    def processed_files(self) -> list[Path]:
        if not self.output_dir.is_dir():
            return []
        return sorted(p for p in self.output_dir.glob(f"*{PROCESSED_MARKER}*.wav") if p.is_file())

    def cleanup(self, hours_old: float = 24) -> int:
        """Delete processed outputs last modified more than ``hours_old`` hours ago."""
        cutoff = self.clock() - hours_old * 3600
        cleaned = 0
        for path in self.processed_files():
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    cleaned += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                LOG.warning("Could not remove %s: %s", path, exc)
        LOG.info("Temp file cleanup completed: %d files removed (older than %sh)", cleaned, hours_old)
        return cleaned

    def stats(self) -> dict:
        count = 0
        total = 0
        for path in self.processed_files():
            try:
                total += path.stat().st_size
            except FileNotFoundError:
                continue
            count += 1
        return {
            "temp_files_count": count,
            "temp_files_size_mb": round(total / (1024 * 1024), 2),
            "temp_directory": str(self.output_dir),
        }
