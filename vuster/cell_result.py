"""
CellResult - Per-candidate outcome of the fetch and resize stage.

Candidates are dispatched concurrently but their results are collected
by submission position, so slot indices follow the submission order and
not the completion order.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from PIL import Image

from .video_record import AtlasCandidate

T = TypeVar('T')


@dataclass(frozen=True)
class CellResult:
    """
    Outcome for one candidate: either an image ready for the atlas or a
    skip with its reason.

    Attributes:
        position: Index of the candidate in the submitted list
        candidate: The candidate this result belongs to
        image: Resized cell image (None when skipped)
        reason: Skip reason (None on success)
    """
    position: int
    candidate: AtlasCandidate
    image: Optional[Image.Image] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, position: int, candidate: AtlasCandidate, image: Image.Image) -> 'CellResult':
        return cls(position=position, candidate=candidate, image=image)

    @classmethod
    def skipped(cls, position: int, candidate: AtlasCandidate, reason: str) -> 'CellResult':
        return cls(position=position, candidate=candidate, reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.image is not None


async def gather_in_order(
    items: Sequence[T],
    worker: Callable[[int, T], Awaitable[CellResult]]
) -> List[CellResult]:
    """
    Run worker(position, item) for every item concurrently.

    Returns:
        Results sorted by the position they were submitted with
    """
    tasks = [worker(position, item) for position, item in enumerate(items)]
    results = await asyncio.gather(*tasks)
    return sorted(results, key=lambda r: r.position)


def compact(results: Sequence[CellResult]) -> List[CellResult]:
    """Drop skipped results, keeping the survivors in position order."""
    return [r for r in sorted(results, key=lambda r: r.position) if r.succeeded]
