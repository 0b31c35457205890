"""Ranking of roster name records against a free-text driver name."""

import logging
from typing import Iterable

from fleetmatch import AlternativeMatch, DriverNameRecord, NameMatchResult
from fleetmatch.scoring import calculate_similarity

log = logging.getLogger(__name__)

DEFAULT_MINIMUM_CONFIDENCE = 0.7
DEFAULT_DISAMBIGUATION_CONFIDENCE = 0.5
MAX_ALTERNATIVES = 3


def _rank_key(scored: tuple[float, DriverNameRecord]) -> tuple:
    """Confidence descending, then driver id, system and name ascending."""
    confidence, record = scored
    return (-confidence, record.driver_id, record.system_name.value, record.mapped_name)


def _score_records(
    search_name: str,
    driver_records: Iterable[DriverNameRecord],
    minimum_confidence: float,
) -> list[tuple[float, DriverNameRecord]]:
    """Score all records and keep those at or above the threshold, ranked."""
    scored = []
    for record in driver_records:
        confidence = calculate_similarity(search_name, record.mapped_name)
        if confidence >= minimum_confidence:
            scored.append((confidence, record))
    scored.sort(key=_rank_key)
    return scored


def find_best_match(
    search_name: str,
    driver_records: Iterable[DriverNameRecord],
    minimum_confidence: float = DEFAULT_MINIMUM_CONFIDENCE,
) -> NameMatchResult | None:
    """Find the driver whose mapped name best matches ``search_name``.

    Args:
        search_name: Free-text name as reported by a source system.
        driver_records: Candidate roster records.
        minimum_confidence: Scores below this are discarded (0–1).

    Returns:
        Best NameMatchResult with up to three runner-ups attached, or None if
        the name is blank or no record clears the threshold.
    """
    if not search_name or not search_name.strip():
        return None

    scored = _score_records(search_name, driver_records, minimum_confidence)
    if not scored:
        log.debug("No match for %r at >= %.2f", search_name, minimum_confidence)
        return None

    best_confidence, best = scored[0]
    alternatives = [
        AlternativeMatch(
            driver_id=record.driver_id,
            confidence=confidence,
            matched_name=record.mapped_name,
            matched_system=record.system_name,
        )
        for confidence, record in scored[1:1 + MAX_ALTERNATIVES]
    ]
    return NameMatchResult(
        driver_id=best.driver_id,
        confidence=best_confidence,
        matched_name=best.mapped_name,
        matched_system=best.system_name,
        alternative_matches=alternatives,
    )


def find_all_matches(
    search_name: str,
    driver_records: Iterable[DriverNameRecord],
    minimum_confidence: float = DEFAULT_DISAMBIGUATION_CONFIDENCE,
) -> list[NameMatchResult]:
    """Return every candidate at or above the threshold, best first.

    Intended for manual disambiguation; results carry no alternatives.
    """
    if not search_name or not search_name.strip():
        return []
    return [
        NameMatchResult(
            driver_id=record.driver_id,
            confidence=confidence,
            matched_name=record.mapped_name,
            matched_system=record.system_name,
        )
        for confidence, record in _score_records(search_name, driver_records, minimum_confidence)
    ]
