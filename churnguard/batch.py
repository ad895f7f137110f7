"""
Fetch-and-score orchestration for a batch of profiles.

Event fetching is I/O bound and owned by the caller; this module only runs
the supplied fetch function with bounded concurrency and scores what comes
back. A profile whose fetch fails is scored as if it had no events, so one
bad profile never aborts the batch.
"""

from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .customer import Profile
from .events import now_ms
from .logging_config import get_logger
from .scorer import ChurnScorer, ScoringResult

logger = get_logger(__name__)

EventFetcher = Callable[[str], Optional[Iterable[Mapping]]]


def fetch_events_safely(fetch_events: EventFetcher, profile_id: str) -> list[Mapping]:
    """
    Fetch one profile's events, degrading to an empty list on failure.

    Args:
        fetch_events: Callable returning the raw events for a profile id
        profile_id: Profile to fetch

    Returns:
        List of raw events (empty if the fetch raised)
    """
    try:
        return list(fetch_events(profile_id) or [])
    except Exception as e:
        logger.warning(
            "event fetch failed, scoring with no events",
            extra={"profile_id": profile_id, "error": str(e)},
        )
        return []


def score_profiles(
    profiles: Iterable[Profile | Mapping],
    fetch_events: EventFetcher,
    scorer: ChurnScorer,
    max_workers: int = 4,
    now: Optional[float] = None,
    strategy: Optional[str] = None,
) -> ScoringResult:
    """
    Fetch events for every profile and score the batch.

    Args:
        profiles: Profiles or raw profile records
        fetch_events: Callable(profile_id) -> raw events
        scorer: ChurnScorer holding the fully built catalog
        max_workers: Maximum concurrent fetches
        now: Scoring clock shared by the whole batch (captured once if None)
        strategy: Strategy override for the whole batch

    Returns:
        ScoringResult in profile order

    Raises:
        ValueError: If max_workers is not positive
    """
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    profiles = [p if isinstance(p, Profile) else Profile.from_raw(p) for p in profiles]
    now = now_ms() if now is None else now

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        event_lists = list(
            pool.map(lambda profile: fetch_events_safely(fetch_events, profile.id), profiles)
        )

    logger.info(
        "fetched events for batch",
        extra={
            "profiles": len(profiles),
            "events": sum(len(events) for events in event_lists),
        },
    )
    return scorer.score(zip(profiles, event_lists), now=now, strategy=strategy)
