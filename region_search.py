# region_search.py

"""
filepath: region_search.py

Search service over the denormalized region store.

Six operations share one execution path (validate -> normalize -> retrieve ->
rank -> truncate); what differs per operation is declared once in
``SEARCH_OPERATIONS``:

    search       substring of full_text            ordered by full_text
    district     Jaro-Winkler on district   >= 0.8 ordered by score desc
    subdistrict  Jaro-Winkler on subdistrict >= 0.8 ordered by score desc
    province     Jaro-Winkler on province   >= 0.8 ordered by score desc
    city         Jaro-Winkler on city against "Kota <q>" or "Kabupaten <q>"
    postal       exact postal code (5 digits)      ordered by full_text

The service holds no mutable state; it can serve any number of concurrent
requests against one read-only repository.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from itertools import groupby
from typing import Callable, Dict, List, Optional, Tuple

from administrative_regions_repository import AdministrativeRegionsRepository, Region
from errors import InvalidInputError, NotFoundError
from jaro_winkler import jaro_winkler_similarity
from query_normalizer import is_valid_postal_code, normalize_query

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.8
RESULT_LIMIT = 10

# Official prefixes of Indonesian city (Kota) and regency (Kabupaten) names.
CITY_PREFIX = "Kota "
REGENCY_PREFIX = "Kabupaten "

QUERY_REQUIRED = "query parameter is required"
POSTAL_CODE_REQUIRED = "postal code parameter is required"
POSTAL_CODE_INVALID = "postal code must be a 5-digit number"
POSTAL_CODE_NOT_FOUND = "no regions found for the provided postal code"


class MatchStrategy(Enum):
    SUBSTRING = "substring"
    SIMILARITY = "similarity"
    EXACT = "exact"


def _as_is(query: str) -> Tuple[str, ...]:
    return (query,)


def _city_or_regency(query: str) -> Tuple[str, ...]:
    return (CITY_PREFIX + query, REGENCY_PREFIX + query)


@dataclass(frozen=True)
class SearchOperation:
    """How one named search reads the store.

    Attributes:
        label: Name used in log lines ("District search").
        field: Region column the predicate applies to.
        strategy: Substring, similarity scan, or exact lookup.
        targets: Builds the strings a field value is scored against; the
            score tuple is also the sort key, compared element by element.
        order_by: Ascending sort column for substring and exact lookups.
        normalize: Whether the raw input goes through ``normalize_query``.
        validate: Extra check on the raw input; returns an error message or None.
        missing_message: Error message for an empty parameter.
        not_found_is_error: Raise NotFoundError instead of returning [].
    """
    label: str
    field: str
    strategy: MatchStrategy
    targets: Callable[[str], Tuple[str, ...]] = _as_is
    order_by: str = "full_text"
    normalize: bool = True
    validate: Optional[Callable[[str], Optional[str]]] = None
    missing_message: str = QUERY_REQUIRED
    not_found_is_error: bool = False


def _postal_code_format(raw: str) -> Optional[str]:
    return None if is_valid_postal_code(raw) else POSTAL_CODE_INVALID


SEARCH_OPERATIONS: Dict[str, SearchOperation] = {
    "search": SearchOperation("Search", "full_text", MatchStrategy.SUBSTRING),
    "district": SearchOperation("District search", "district", MatchStrategy.SIMILARITY),
    "subdistrict": SearchOperation("Subdistrict search", "subdistrict", MatchStrategy.SIMILARITY),
    "province": SearchOperation("Province search", "province", MatchStrategy.SIMILARITY),
    "city": SearchOperation("City search", "city", MatchStrategy.SIMILARITY, targets=_city_or_regency),
    "postal": SearchOperation(
        "Postal code search", "postal_code", MatchStrategy.EXACT,
        normalize=False,
        validate=_postal_code_format,
        missing_message=POSTAL_CODE_REQUIRED,
        not_found_is_error=True,
    ),
}


class RegionSearchService:
    """Runs the named search operations against an injected region store."""

    def __init__(self, repository: AdministrativeRegionsRepository, *,
                 threshold: float = SIMILARITY_THRESHOLD, limit: int = RESULT_LIMIT):
        self.repository = repository
        self.threshold = threshold
        self.limit = limit

    # -----------------------
    # Public API
    # -----------------------
    def search(self, query: Optional[str]) -> List[Region]:
        return self.run("search", query)

    def search_by_district(self, query: Optional[str]) -> List[Region]:
        return self.run("district", query)

    def search_by_subdistrict(self, query: Optional[str]) -> List[Region]:
        return self.run("subdistrict", query)

    def search_by_city(self, query: Optional[str]) -> List[Region]:
        return self.run("city", query)

    def search_by_province(self, query: Optional[str]) -> List[Region]:
        return self.run("province", query)

    def search_by_postal_code(self, postal_code: Optional[str]) -> List[Region]:
        return self.run("postal", postal_code)

    def run(self, operation: str, raw: Optional[str]) -> List[Region]:
        """Execute one operation end to end.

        Args:
            operation: Key of ``SEARCH_OPERATIONS``.
            raw: The user's parameter as received.

        Returns:
            At most ``limit`` regions in the operation's order; [] on no match.

        Raises:
            InvalidInputError: ``raw`` is empty or fails the operation's validation.
            NotFoundError: Postal code search matched nothing.
            StoreFailureError: The store query failed.
        """
        op = SEARCH_OPERATIONS[operation]
        if not raw:
            raise InvalidInputError(op.missing_message)
        if op.validate is not None:
            problem = op.validate(raw)
            if problem:
                logger.warning("%s rejected invalid input %r: %s", op.label, raw, problem)
                raise InvalidInputError(problem)

        logger.info("Processing %s request: %r", op.label.lower(), raw)
        query = normalize_query(raw) if op.normalize else raw

        if op.strategy is MatchStrategy.SUBSTRING:
            results = self.repository.find_containing(op.field, query, order_by=op.order_by, limit=self.limit)
        elif op.strategy is MatchStrategy.EXACT:
            results = self.repository.find_equal(op.field, query, order_by=op.order_by, limit=self.limit)
        else:
            results = self._rank_by_similarity(op, query)

        if not results and op.not_found_is_error:
            logger.info("No results found for %s %r", op.label.lower(), raw)
            raise NotFoundError(POSTAL_CODE_NOT_FOUND)

        logger.info("%s completed: %r -> %d results", op.label, raw, len(results))
        return results

    # -----------------------
    # Similarity ranking
    # -----------------------
    def score(self, operation: str, value: str, query: str) -> Tuple[float, ...]:
        """Similarity of one field value to the (normalized) query, per target."""
        op = SEARCH_OPERATIONS[operation]
        return tuple(jaro_winkler_similarity(value, target) for target in op.targets(query))

    def _rank_by_similarity(self, op: SearchOperation, query: str) -> List[Region]:
        targets = op.targets(query)

        # Each distinct value is scored once; many subdistricts share a district/city/province.
        scored: List[Tuple[Tuple[float, ...], str]] = []
        for value in self.repository.distinct_values(op.field):
            key = tuple(jaro_winkler_similarity(value, target) for target in targets)
            if max(key) >= self.threshold:
                scored.append((key, value))
        if not scored:
            return []

        scored.sort(key=lambda item: item[0], reverse=True)
        results: List[Region] = []
        for _, group in groupby(scored, key=lambda item: item[0]):
            remaining = self.limit - len(results)
            if remaining <= 0:
                break
            # equal scores: rows keep code order
            values = [value for _, value in group]
            results.extend(self.repository.find_in(op.field, values, limit=remaining))
        return results
