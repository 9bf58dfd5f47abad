"""
Global Trend Vector.

Centroid of the embeddings of the most favorited published content,
recomputed on a slow cadence. Consumers read it as a precomputed signal
(e.g. to initialize a new user's preference vector); the moderation
pipeline itself never depends on it.

Exports:
    calculate_centroid: Mean of equally sized vectors
    GlobalTrendManager: Periodic refresh and read-only access
"""

import asyncio
from typing import List, Optional, Sequence

import numpy as np

from interfaces.repository import ITrendSource
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "GlobalTrendManager")


def calculate_centroid(vectors: Sequence[Sequence[float]], dimensions: int) -> Optional[List[float]]:
    """
    Mean of the vectors that have exactly ``dimensions`` components.

    Returns:
        Centroid, or None if no vector has the right dimensionality
    """
    valid = [v for v in vectors if v is not None and len(v) == dimensions]
    if not valid:
        return None
    return np.asarray(valid, dtype=np.float64).mean(axis=0).tolist()


class GlobalTrendManager:
    """Keeps the trend vector fresh."""

    def __init__(
        self,
        source: ITrendSource,
        dimensions: int = 768,
        top_n: int = 20,
        refresh_interval_seconds: float = 3600.0,
    ):
        self.source = source
        self.dimensions = dimensions
        self.top_n = top_n
        self.refresh_interval_seconds = refresh_interval_seconds
        self._vector: Optional[List[float]] = None

    @property
    def current(self) -> Optional[List[float]]:
        """Latest centroid (a copy), or None before the first successful refresh."""
        return list(self._vector) if self._vector is not None else None

    async def refresh(self) -> Optional[List[float]]:
        vectors = await self.source.top_published_embeddings(self.top_n)
        centroid = calculate_centroid(vectors, self.dimensions)
        if centroid is None:
            logger.info(f"No {self.dimensions}-dim embeddings among top {self.top_n}, keeping previous trend vector")
            return self.current
        self._vector = centroid
        logger.info(f"Trend vector refreshed from {len(vectors)} published items")
        return self.current

    async def run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"❌ Trend vector refresh failed: {e}", extra={'error_type': type(e).__name__})
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.refresh_interval_seconds)
            except asyncio.TimeoutError:
                pass
