"""
Chunk planning: turn a byte budget and silence markers into cut boundaries.

Boundaries are spread evenly over the file, then each one is snapped to the
nearest silence so that cuts fall between words rather than inside them.
"""

import logging
import math
from typing import List, Sequence

from .timing import timer
from .types import ChunkPlan, InputDescriptor, SilenceMarkers

logger = logging.getLogger(__name__)

MIB = 1024 * 1024
DEFAULT_MAX_CHUNK_MIB = 20.0


def chunk_count(total_bytes: int, max_chunk_bytes: float) -> int:
    """
    Number of chunks needed to keep each one under the byte budget.

    Args:
        total_bytes: Size of the source file
        max_chunk_bytes: Byte budget per chunk

    Returns:
        ceil(total_bytes / max_chunk_bytes), at least 1
    """
    if max_chunk_bytes <= 0:
        raise ValueError(f"max_chunk_bytes must be positive, got {max_chunk_bytes}")
    return max(1, math.ceil(total_bytes / max_chunk_bytes))


def nearest_marker(markers: Sequence[float], target: float) -> float:
    """Closest marker to target by absolute distance; the earlier marker wins ties."""
    if not markers:
        raise ValueError("markers must not be empty")
    best = markers[0]
    for candidate in markers[1:]:
        if abs(candidate - target) < abs(best - target):
            best = candidate
    return best


def plan_boundaries(total_duration: float, count: int, markers: SilenceMarkers, min_gap: float) -> List[float]:
    """
    Compute cut boundaries snapped to silence.

    A snapped boundary is kept only when it lies more than min_gap after the
    previously kept boundary and more than min_gap before the end of the file,
    so no chunk is shorter than min_gap. Skipped targets simply reduce the
    final chunk count.

    Args:
        total_duration: Length of the source in seconds
        count: Desired number of chunks
        markers: Candidate split points (with sentinels)
        min_gap: Minimum chunk length in seconds

    Returns:
        Boundaries starting at 0.0 and ending at total_duration
    """
    approx_seconds = total_duration / count
    boundaries = [0.0]
    for i in range(1, count):
        target = i * approx_seconds
        snap = nearest_marker(markers.markers, target)
        if snap - boundaries[-1] > min_gap and total_duration - snap > min_gap:
            boundaries.append(snap)
        else:
            logger.debug(f"Skipping boundary {snap:.2f}s for target {target:.2f}s (too close to a neighbour)")
    boundaries.append(total_duration)
    return boundaries


@timer
def plan_chunks(descriptor: InputDescriptor, markers: SilenceMarkers, max_chunk_bytes: float, min_gap: float) -> ChunkPlan:
    """
    Build the chunk plan for a probed input.

    Args:
        descriptor: Probed input (duration and size)
        markers: Silence markers for the input
        max_chunk_bytes: Byte budget per chunk
        min_gap: Minimum chunk length in seconds

    Returns:
        ChunkPlan whose spans cover [0, duration] contiguously
    """
    count = chunk_count(descriptor.size_bytes, max_chunk_bytes)
    boundaries = plan_boundaries(descriptor.duration, count, markers, min_gap)
    plan = ChunkPlan(total_duration=descriptor.duration, requested_chunks=count, boundaries=boundaries)
    logger.info(
        f"File is {descriptor.size_mib:.1f} MiB -> {count} chunk(s) requested, {len(plan)} planned "
        f"(~{descriptor.duration / count:.1f}s each)"
    )
    return plan
