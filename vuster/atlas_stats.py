"""
AtlasStats - Statistics for one atlas build.
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from .cell_result import CellResult


@dataclass
class AtlasStats:
    """
    Statistics for an atlas cycle.

    Attributes:
        total_candidates: Eligible videos found across all creators
        capacity: Cells available in the atlas
        attempted: Candidates kept after truncation to capacity
        composited: Candidates that made it onto the canvas
        skipped: Candidates dropped by fetch or resize failures
        skip_reasons: Count of skips per reason
        indexed: Records whose slot index was committed
        bytes_published: Size of the uploaded atlas
        start_time: Start timestamp
    """
    total_candidates: int = 0
    capacity: int = 0
    attempted: int = 0
    composited: int = 0
    skipped: int = 0
    skip_reasons: Counter = field(default_factory=Counter)
    indexed: int = 0
    bytes_published: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def excluded_by_capacity(self) -> int:
        """Candidates left pending because the atlas was full."""
        return max(self.total_candidates - self.attempted, 0)

    @property
    def fill_ratio(self) -> float:
        """Fraction of cells holding a thumbnail."""
        if self.capacity > 0:
            return self.composited / self.capacity
        return 0.0

    def record_results(self, results: Sequence[CellResult]) -> None:
        """Fold per-candidate results into the counters."""
        for result in results:
            if result.succeeded:
                self.composited += 1
            else:
                self.skipped += 1
                self.skip_reasons[result.reason] += 1
