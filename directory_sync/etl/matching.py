"""Identity resolution between incoming listings and existing directory records."""

import logging
from typing import Any, Iterable, Optional, Tuple

from directory_sync.models import MatchResult

logger = logging.getLogger(__name__)

NAME_THRESHOLD = 0.8
ADDRESS_THRESHOLD = 0.6
STRATEGIES = ("first", "best")


def levenshtein_distance(left: str, right: str) -> int:
    """Classic edit distance with unit insert, delete and substitute costs."""
    rows = len(left) + 1
    cols = len(right) + 1
    matrix = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            if left[i - 1] == right[j - 1]:
                matrix[i][j] = matrix[i - 1][j - 1]
            else:
                matrix[i][j] = min(
                    matrix[i - 1][j - 1] + 1,
                    matrix[i][j - 1] + 1,
                    matrix[i - 1][j] + 1,
                )
    return matrix[rows - 1][cols - 1]


def normalized_similarity(left: Optional[str], right: Optional[str]) -> float:
    """Case-insensitive edit similarity in [0, 1]; two empty strings are identical."""
    left = (left or "").casefold()
    right = (right or "").casefold()
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(left, right)) / longest


class IdentityResolver:
    """Decides whether a candidate refers to a restaurant already in a snapshot.

    An exact external id match always wins. Otherwise each record is scored on
    name and address similarity; with the ``first`` strategy the first record
    clearing both thresholds is returned in snapshot order, with ``best`` the
    highest combined score wins and exact ties go to the lowest store id.
    """

    def __init__(
        self,
        strategy: str = "first",
        name_threshold: float = NAME_THRESHOLD,
        address_threshold: float = ADDRESS_THRESHOLD,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"unknown match strategy {strategy!r}, expected one of {', '.join(STRATEGIES)}")
        self.strategy = strategy
        self.name_threshold = name_threshold
        self.address_threshold = address_threshold

    def resolve(self, candidate: Any, existing: Iterable[Any]) -> MatchResult:
        existing = list(existing)

        if candidate.external_id:
            for record in existing:
                if record.external_id == candidate.external_id:
                    return MatchResult.found(record)

        if self.strategy == "best":
            return self._best_match(candidate, existing)

        for record in existing:
            if self._scores(candidate, record) is not None:
                return MatchResult.found(record)
        return MatchResult.missing()

    def _best_match(self, candidate: Any, existing: Iterable[Any]) -> MatchResult:
        best = None
        best_key = None
        for record in existing:
            scores = self._scores(candidate, record)
            if scores is None:
                continue
            # Higher combined score first, then lowest store id.
            key = (-sum(scores), _id_sort_key(getattr(record, "record_id", None)))
            if best_key is None or key < best_key:
                best, best_key = record, key
        if best is None:
            return MatchResult.missing()
        return MatchResult.found(best)

    def _scores(self, candidate: Any, record: Any) -> Optional[Tuple[float, float]]:
        name_similarity = normalized_similarity(candidate.name, record.name)
        if name_similarity <= self.name_threshold:
            return None
        address_similarity = normalized_similarity(candidate.address, record.address)
        if address_similarity <= self.address_threshold:
            return None
        logger.debug(
            "Fuzzy match %r ~ %r (name=%.2f, address=%.2f)",
            candidate.name,
            record.name,
            name_similarity,
            address_similarity,
        )
        return name_similarity, address_similarity


def _id_sort_key(record_id: Any) -> Tuple[int, Any]:
    if record_id is None:
        return (2, "")
    if isinstance(record_id, (int, float)):
        return (0, record_id)
    text = str(record_id)
    if text.isdigit():
        return (0, int(text))
    return (1, text)
