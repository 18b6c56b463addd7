"""Derive per-video access status from a learner's completed set.

Status is never stored. Every read recomputes it from the published catalog
and ``UserProgress.completed_videos``.
"""

import enum
from collections import Counter
from collections.abc import Iterable, Sequence
from uuid import UUID

from app.catalog.models import Video
from app.core.exceptions import DataIntegrityError


class VideoAccessStatus(str, enum.Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


def order_catalog(catalog: Iterable[Video]) -> list[Video]:
    """Sort published videos by ``sort_order`` and reject ties.

    The returned list index plus one is the video's dense rank, which is what
    the rest of the engine treats as its position in the path.
    """
    videos = sorted(catalog, key=lambda v: v.sort_order)
    counts = Counter(v.sort_order for v in videos)
    duplicates = sorted(order for order, n in counts.items() if n > 1)
    if duplicates:
        raise DataIntegrityError(
            "Published videos share the same order",
            details={
                "orders": duplicates,
                "video_ids": [str(v.id) for v in videos if v.sort_order in duplicates],
            },
        )
    return videos


def dense_rank(catalog: Sequence[Video], video_id: UUID) -> int | None:
    """1-based position of ``video_id`` in an already ordered catalog."""
    for index, video in enumerate(catalog, start=1):
        if video.id == video_id:
            return index
    return None


def resolve_status(
    catalog: Iterable[Video], completed_video_ids: Iterable[UUID]
) -> dict[UUID, VideoAccessStatus]:
    """Compute the status of every published video.

    A video is completed if its id is in the completed set. The first video
    is never locked. Any other video is unlocked only when its predecessor is
    completed, and only the first such video is: a completed video sitting
    after a gap (left behind by a reorder) does not open a second frontier.
    Completed ids that are not in the catalog are ignored.
    """
    completed = set(completed_video_ids)
    statuses: dict[UUID, VideoAccessStatus] = {}
    frontier_found = False

    for video in order_catalog(catalog):
        if video.id in completed:
            status = VideoAccessStatus.COMPLETED
        elif not frontier_found:
            status = VideoAccessStatus.UNLOCKED
            frontier_found = True
        else:
            status = VideoAccessStatus.LOCKED
        statuses[video.id] = status

    return statuses


def frontier(statuses: dict[UUID, VideoAccessStatus]) -> UUID | None:
    """The single unlocked video, or None once the whole path is completed."""
    return next(
        (vid for vid, status in statuses.items() if status is VideoAccessStatus.UNLOCKED),
        None,
    )


def has_access(status: VideoAccessStatus | None) -> bool:
    return status in (VideoAccessStatus.UNLOCKED, VideoAccessStatus.COMPLETED)
