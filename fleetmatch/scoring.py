"""Similarity scoring between two free-text driver names."""

from rapidfuzz.distance import Levenshtein

from fleetmatch.names import extract_names, generate_name_variations, normalize_name

# Contribution of a first-name match through a nickname/formal variant
NICKNAME_SCORE = 0.8
# Scale factors for partial (edit distance) component matches
FIRSTNAME_PARTIAL_WEIGHT = 0.5
LASTNAME_PARTIAL_WEIGHT = 0.7

WEIGHTS: dict[str, float] = {
    'component': 0.6,
    'overall': 0.2,
    'token': 0.2,
}
# Damping applied to the single strongest signal
STRONGEST_SIGNAL_FACTOR = 0.8


def levenshtein_similarity(a: str, b: str) -> float:
    """Edit-distance similarity normalized by the longer string.

    Returns:
        ``1 - distance / max(len(a), len(b))``, or 1.0 if both are empty.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def token_similarity(a: str, b: str) -> float:
    """Jaccard index over case-insensitive whitespace tokens."""
    tokens_a = set(a.lower().split())
    tokens_b = set(b.lower().split())
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def _first_name_score(first_a: str, first_b: str) -> float:
    if first_a.lower() == first_b.lower():
        return 1.0
    variants_a = {v.lower() for v in generate_name_variations(first_a, '')}
    variants_b = {v.lower() for v in generate_name_variations(first_b, '')}
    if variants_a & variants_b:
        return NICKNAME_SCORE
    return levenshtein_similarity(first_a.lower(), first_b.lower()) * FIRSTNAME_PARTIAL_WEIGHT


def _last_name_score(last_a: str, last_b: str) -> float:
    if last_a.lower() == last_b.lower():
        return 1.0
    return levenshtein_similarity(last_a.lower(), last_b.lower()) * LASTNAME_PARTIAL_WEIGHT


def calculate_similarity(name1: str, name2: str) -> float:
    """Calculate the confidence that two names denote the same person.

    Combines a component score (first/last name with nickname awareness),
    the edit-distance similarity of the whole normalized names and the
    token overlap. The final score is the larger of the weighted blend and
    the damped strongest single signal, so one strong signal is not diluted
    by the weighting.

    Args:
        name1: First name string.
        name2: Second name string.

    Returns:
        Confidence between 0.0 and 1.0.
    """
    norm1 = normalize_name(name1).lower()
    norm2 = normalize_name(name2).lower()
    if not norm1 or not norm2:
        return 0.0
    if norm1 == norm2:
        return 1.0

    parts1 = extract_names(name1)
    parts2 = extract_names(name2)

    component_scores: list[float] = []
    if parts1.first_name and parts2.first_name:
        component_scores.append(_first_name_score(parts1.first_name, parts2.first_name))
    if parts1.last_name and parts2.last_name:
        component_scores.append(_last_name_score(parts1.last_name, parts2.last_name))
    component = sum(component_scores) / len(component_scores) if component_scores else 0.0

    overall = levenshtein_similarity(norm1, norm2)
    tokens = token_similarity(norm1, norm2)

    score = max(
        WEIGHTS['component'] * component
        + WEIGHTS['overall'] * overall
        + WEIGHTS['token'] * tokens,
        max(component, overall, tokens) * STRONGEST_SIGNAL_FACTOR,
    )
    return min(1.0, max(0.0, score))


def is_same_person(name1: str, name2: str, threshold: float = 0.8) -> bool:
    """Check whether two names likely refer to the same person."""
    return calculate_similarity(name1, name2) >= threshold
