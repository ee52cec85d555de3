"""
Query Executor — StructuredQuery × Records → ExecutionResult
============================================================

Third pipeline stage.  Pure function over its two inputs; no I/O.

EXECUTION ORDER
---------------
    1. Wrap records      mappings → CardRecord views; results echo the
                         caller's own objects
    2. Filter            every top-level filter must hold (FilterGroup
                         nodes carry explicit OR)
    3. Distinct          case-folded unique values of one field
    4. Aggregate         one row per group (or one row for the whole set)
    5. Sort              only when results are records (no aggregation)

RESULT SHAPES
-------------
    records           results = filtered (sorted) records, total = count
    aggregate rows    results = [{group_field: key, "sum_apr": ...}, ...]
                      total = number of rows
    distinct          values = [{"value": "Chase", "count": 2}, ...]
                      total = number of distinct values
    breakdown         each value also carries "cards": up to three of the
                      caller's records holding that value

POLICIES
--------
- Missing group keys form ONE bucket keyed None
- Group keys are case-folded; a row shows the first-seen spelling
- Rows are ordered by the first aggregation value, descending, stable
- Grouping without an aggregation gets an implicit count
- sum/avg/min/max over no numeric values → 0; avg rounded to 2 decimals
- Sorting keeps None values last in either direction and is stable

Determinism: identical (query, records) → identical output, including order.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from card_record import CardRecord, to_number
from filter_operators import matches
from query_decomposer import AggregationClause, Sorting, StructuredQuery

logger = logging.getLogger(__name__)

# Sample cards listed under each distinct value of a breakdown.
DISTINCT_SAMPLE_SIZE = 3


# =============================================================================
# RESULT TYPE
# =============================================================================

@dataclass
class ExecutionResult:
    results: List[Any] = field(default_factory=list)
    values: Optional[List[Dict[str, Any]]] = None
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        results = [_plain(r) for r in self.results]
        values = self.values
        if values is not None:
            values = [
                {**entry, "cards": [_plain(c) for c in entry["cards"]]} if "cards" in entry else entry
                for entry in values
            ]
        return {"results": results, "values": values, "total": self.total}


# =============================================================================
# Internal helpers
# =============================================================================

def _plain(record: Any) -> Any:
    return record.to_dict() if isinstance(record, CardRecord) else record


def _wrap_records(records: Sequence[Any]) -> List[Tuple[Any, CardRecord]]:
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Sequence):
        raise TypeError(f"records must be a sequence of card records, got {type(records).__name__}")
    pairs = []
    for index, record in enumerate(records):
        if not isinstance(record, (CardRecord, Mapping)):
            raise TypeError(
                f"record {index} must be a CardRecord or mapping, got {type(record).__name__}"
            )
        pairs.append((record, CardRecord.from_dict(record)))
    return pairs


def _group_key(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().casefold()
    return value


def _numeric_values(views: List[CardRecord], field_name: Optional[str]) -> List[float]:
    if field_name is None:
        return []
    numbers = []
    for view in views:
        value = view.get(field_name)
        if isinstance(value, bool):
            continue
        number = to_number(value)
        if number is not None:
            numbers.append(number)
    return numbers


def _aggregate(clause: AggregationClause, views: List[CardRecord]) -> Any:
    if clause.operation == "count":
        if clause.field is None:
            return len(views)
        return sum(1 for view in views if view.get(clause.field) is not None)

    numbers = _numeric_values(views, clause.field)
    if not numbers:
        return 0
    if clause.operation == "sum":
        return sum(numbers)
    if clause.operation == "avg":
        return round(sum(numbers) / len(numbers), 2)
    if clause.operation == "min":
        return min(numbers)
    if clause.operation == "max":
        return max(numbers)
    return 0


def _sort_value(value: Any) -> Any:
    """Comparable form of a field value; mappings rank by best multiplier."""
    if isinstance(value, Mapping):
        numbers = [n for n in (to_number(v) for v in value.values()) if n is not None]
        return max(numbers) if numbers else None
    if isinstance(value, bool):
        return int(value)
    return value


# =============================================================================
# QUERY EXECUTOR
# =============================================================================

class QueryExecutor:
    """Stateless executor; one instance can serve concurrent callers."""

    def execute(self, structured_query: StructuredQuery, records: Sequence[Any]) -> ExecutionResult:
        """
        Run a StructuredQuery over an in-memory record sequence.

        Raises:
            TypeError: ``structured_query`` is not a StructuredQuery, or
                ``records`` is not a sequence of CardRecord / mapping rows.
        """
        if not isinstance(structured_query, StructuredQuery):
            raise TypeError(
                f"structured_query must be a StructuredQuery, got {type(structured_query).__name__}"
            )
        pairs = _wrap_records(records)

        filtered = [
            (original, view) for original, view in pairs
            if all(matches(node, view) for node in structured_query.filters)
        ]
        logger.info(
            f"[EXECUTE] {len(filtered)}/{len(pairs)} records after "
            f"{len(structured_query.filters)} filter(s)"
        )

        result = ExecutionResult()

        aggregations = list(structured_query.aggregations)
        if structured_query.grouping and not aggregations:
            aggregations = [AggregationClause(operation="count", field=None)]

        if aggregations:
            result.results = self._aggregate_rows(
                [view for _, view in filtered], aggregations, structured_query.grouping
            )
        else:
            if structured_query.sorting:
                filtered = self._sort(filtered, structured_query.sorting)
            result.results = [original for original, _ in filtered]
        result.total = len(result.results)

        if structured_query.distinct:
            result.values = self._distinct(
                filtered,
                structured_query.distinct.field,
                structured_query.distinct.include_details,
            )
            result.total = len(result.values)

        return result

    def execute_batch(
        self,
        structured_queries: Sequence[StructuredQuery],
        records: Sequence[Any],
    ) -> List[ExecutionResult]:
        if isinstance(structured_queries, (str, bytes)) or not isinstance(structured_queries, Sequence):
            raise TypeError("structured_queries must be a sequence of StructuredQuery")
        return [self.execute(query, records) for query in structured_queries]

    # ------------------------------------------------------------------
    # Distinct
    # ------------------------------------------------------------------

    @staticmethod
    def _distinct(
        pairs: List[Tuple[Any, CardRecord]],
        field_name: str,
        include_details: bool = False,
    ) -> List[Dict[str, Any]]:
        buckets: "OrderedDict[Any, Dict[str, Any]]" = OrderedDict()
        for original, view in pairs:
            value = view.get(field_name)
            if value is None or isinstance(value, Mapping):
                continue
            key = _group_key(value)
            if key == "":
                continue
            if key not in buckets:
                buckets[key] = {"value": value, "count": 0}
                if include_details:
                    buckets[key]["cards"] = []
            entry = buckets[key]
            entry["count"] += 1
            if include_details and len(entry["cards"]) < DISTINCT_SAMPLE_SIZE:
                entry["cards"].append(original)

        # sorted() is stable: ties keep first-appearance order
        return sorted(buckets.values(), key=lambda entry: -entry["count"])

    # ------------------------------------------------------------------
    # Grouping + aggregation
    # ------------------------------------------------------------------

    @staticmethod
    def _aggregate_rows(
        views: List[CardRecord],
        aggregations: List[AggregationClause],
        grouping: Optional[str],
    ) -> List[Dict[str, Any]]:
        if not grouping:
            row = {clause.key: _aggregate(clause, views) for clause in aggregations}
            return [row]

        groups: "OrderedDict[Any, Tuple[Any, List[CardRecord]]]" = OrderedDict()
        for view in views:
            raw = view.get(grouping)
            if isinstance(raw, Mapping):
                raw = None
            key = _group_key(raw)
            if key not in groups:
                groups[key] = (raw, [])
            groups[key][1].append(view)

        rows = []
        for display, members in groups.values():
            row: Dict[str, Any] = {grouping: display}
            for clause in aggregations:
                row[clause.key] = _aggregate(clause, members)
            rows.append(row)

        first_key = aggregations[0].key
        return sorted(rows, key=lambda r: -r[first_key])

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    @staticmethod
    def _sort(pairs: List[Tuple[Any, CardRecord]], sorting: Sorting) -> List[Tuple[Any, CardRecord]]:
        present, missing = [], []
        for pair in pairs:
            value = _sort_value(pair[1].get(sorting.field))
            if value is None:
                missing.append(pair)
            else:
                present.append((value, pair))

        if all(isinstance(v, (int, float)) for v, _ in present):
            keyed = present
        else:
            keyed = [(str(v).casefold(), pair) for v, pair in present]

        # reverse=True keeps equal keys in their original order
        ordered = sorted(keyed, key=lambda item: item[0], reverse=(sorting.direction == "desc"))
        return [pair for _, pair in ordered] + missing


# =============================================================================
# Module-level API
# =============================================================================

DEFAULT_EXECUTOR = QueryExecutor()


def execute(structured_query: StructuredQuery, records: Sequence[Any]) -> ExecutionResult:
    return DEFAULT_EXECUTOR.execute(structured_query, records)
