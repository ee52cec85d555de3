"""
Query Decomposer — Entity Bag → StructuredQuery
===============================================

Second pipeline stage.  Consumes an EntityBag and emits a StructuredQuery:
the intermediate representation between extracted entities and execution
over an in-memory record set.

CONSTRUCTION ORDER
------------------
    1. Aggregation   field via FieldMapper; count never carries a field
    2. Grouping      field via FieldMapper
    3. Distinct      field via FieldMapper, default "issuer"
    4. Sorting       attribute + modifier; desc for highest/maximum/most,
                     asc for lowest/minimum/least
    5. Balance       with_balance → current_balance > 0
                     zero_balance → current_balance == 0
    6. Conditions    comparisons, network, issuer, category, merchant in
                     text order, combined through the logical operators

AND / OR REPRESENTATION
-----------------------
``filters`` is an implicit conjunction.  A run of conditions joined by OR
becomes ONE FilterGroup(logic="OR"), so disjunction is always an explicit
node and never inferred from list adjacency:

    "chase or citi cards with balance over 1000"
        filters = [
            FilterGroup(OR, [issuer = Chase, issuer = Citi]),
            FilterClause(current_balance > 1000),
        ]

Amex and Discover are issuers and networks at once; an issuer condition on
either becomes an OR over both issuer spellings and the network:

    "amex cards"
        filters = [
            FilterGroup(OR, [issuer = American Express, issuer = Amex,
                             card_network == Amex]),
        ]

INVARIANTS
----------
- Every field in the output passed FieldMapper; unmapped clauses are dropped
- Total: never raises, worst case is an empty StructuredQuery
- Deterministic: equal inputs → equal (==) outputs
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from entity_extractor import Condition, EntityBag
from field_mapper import FIELD_MAPPER, FieldMapper
from query_vocabulary import ASCENDING_MODIFIERS, DEFAULT_VOCABULARY, DESCENDING_MODIFIERS

logger = logging.getLogger(__name__)


DEFAULT_DATASET = "query_card_data"

FILTER_OPERATORS = frozenset({"=", ">", "<", ">=", "<=", "=="})
AGGREGATION_OPERATIONS = frozenset({"sum", "avg", "count", "min", "max"})


# =============================================================================
# STRUCTURED QUERY TYPES
# =============================================================================

@dataclass
class FilterClause:
    field: str
    operator: str
    value: Any


@dataclass
class FilterGroup:
    """Explicit boolean node: every clause (AND) or any clause (OR)."""
    logic: str
    clauses: List[Union["FilterClause", "FilterGroup"]] = field(default_factory=list)


@dataclass
class Sorting:
    field: str
    direction: str


@dataclass
class AggregationClause:
    operation: str
    field: Optional[str] = None

    @property
    def key(self) -> str:
        """Result-row column name, e.g. ``sum_current_balance``."""
        if self.field is None:
            return self.operation
        return f"{self.operation}_{self.field}"


@dataclass
class DistinctClause:
    field: str
    include_details: bool = False


@dataclass
class StructuredQuery:
    filters: List[Union[FilterClause, FilterGroup]] = field(default_factory=list)
    sorting: Optional[Sorting] = None
    aggregations: List[AggregationClause] = field(default_factory=list)
    grouping: Optional[str] = None
    distinct: Optional[DistinctClause] = None
    dataset: str = DEFAULT_DATASET

    def is_empty(self) -> bool:
        return not (
            self.filters or self.sorting or self.aggregations
            or self.grouping or self.distinct
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# DECOMPOSER
# =============================================================================

class QueryDecomposer:
    """Builds StructuredQuery values from read-only field and brand tables."""

    def __init__(
        self,
        field_mapper: FieldMapper = FIELD_MAPPER,
        issuer_networks: Mapping[str, str] = DEFAULT_VOCABULARY.issuer_networks,
    ):
        self.field_mapper = field_mapper
        self.issuer_networks = issuer_networks

    def decompose(
        self,
        raw_text: Optional[str],
        entity_bag: Optional[EntityBag],
        dataset_name: str = DEFAULT_DATASET,
    ) -> StructuredQuery:
        query = StructuredQuery(dataset=dataset_name or DEFAULT_DATASET)
        if not isinstance(entity_bag, EntityBag):
            logger.info("[DECOMPOSE] No entity bag; empty query")
            return query

        aggregation = self._build_aggregation(entity_bag)
        if aggregation:
            query.aggregations.append(aggregation)

        query.grouping = self._resolve_optional(
            entity_bag.grouping.group_by if entity_bag.grouping else None, "grouping"
        )
        query.distinct = self._build_distinct(entity_bag)
        query.sorting = self._build_sorting(entity_bag)

        balance_clause = self._build_balance_filter(entity_bag.balance_filter)
        if balance_clause:
            query.filters.append(balance_clause)

        query.filters.extend(self._build_condition_filters(
            entity_bag.conditions,
            entity_bag.compound_operators.logical_operators if entity_bag.compound_operators else [],
        ))

        logger.info(
            f"[DECOMPOSE] '{(raw_text or '')[:60]}' → filters={len(query.filters)} "
            f"sorting={query.sorting} aggregations={query.aggregations} "
            f"grouping={query.grouping} distinct={query.distinct}"
        )
        return query

    # ------------------------------------------------------------------
    # Clause builders
    # ------------------------------------------------------------------

    def _resolve_optional(self, alias: Optional[str], clause: str) -> Optional[str]:
        if alias is None:
            return None
        resolved = self.field_mapper.resolve(alias)
        if resolved is None:
            logger.info(f"[DECOMPOSE] Dropped {clause} clause: unmapped field '{alias}'")
        return resolved

    def _build_aggregation(self, bag: EntityBag) -> Optional[AggregationClause]:
        if not bag.aggregation or bag.aggregation.operation not in AGGREGATION_OPERATIONS:
            return None
        if bag.aggregation.operation == "count":
            return AggregationClause(operation="count", field=None)

        resolved = self._resolve_optional(bag.aggregation.field, "aggregation")
        if resolved is None:
            if bag.aggregation.field is None:
                logger.info(f"[DECOMPOSE] Dropped {bag.aggregation.operation} aggregation: no field")
            return None
        return AggregationClause(operation=bag.aggregation.operation, field=resolved)

    def _build_distinct(self, bag: EntityBag) -> Optional[DistinctClause]:
        if not bag.distinct_query or not bag.distinct_query.is_distinct:
            return None
        resolved = self._resolve_optional(bag.distinct_query.field or "issuer", "distinct")
        if not resolved:
            return None
        return DistinctClause(field=resolved, include_details=bag.distinct_query.include_details)

    def _build_sorting(self, bag: EntityBag) -> Optional[Sorting]:
        if not bag.attribute or not bag.modifier:
            return None
        if bag.modifier in DESCENDING_MODIFIERS:
            direction = "desc"
        elif bag.modifier in ASCENDING_MODIFIERS:
            direction = "asc"
        else:
            return None
        resolved = self._resolve_optional(bag.attribute, "sorting")
        return Sorting(field=resolved, direction=direction) if resolved else None

    @staticmethod
    def _build_balance_filter(balance_filter: Optional[str]) -> Optional[FilterClause]:
        if balance_filter == "with_balance":
            return FilterClause("current_balance", ">", 0)
        if balance_filter == "zero_balance":
            return FilterClause("current_balance", "==", 0)
        return None

    def _condition_to_clause(
        self, condition: Condition
    ) -> Optional[Union[FilterClause, FilterGroup]]:
        if condition.operator not in FILTER_OPERATORS:
            return None
        resolved = self._resolve_optional(condition.field_alias, condition.kind)
        if resolved is None:
            return None
        clause = FilterClause(resolved, condition.operator, condition.value)

        network = self.issuer_networks.get(condition.value) if condition.kind == "issuer" else None
        if network is None:
            return clause

        # Amex / Discover: match the issuer under either spelling, or the network
        clauses = [clause]
        if network.casefold() != str(condition.value).casefold():
            clauses.append(FilterClause(resolved, condition.operator, network))
        network_field = self.field_mapper.resolve("card_network")
        if network_field:
            clauses.append(FilterClause(network_field, "==", network))
        return FilterGroup(logic="OR", clauses=clauses)

    def _build_condition_filters(
        self,
        conditions: List[Condition],
        logical_operators: List[str],
    ) -> List[Union[FilterClause, FilterGroup]]:
        if not conditions:
            return []

        # Split into OR-runs; the runs themselves are AND-ed.
        runs: List[List[Condition]] = [[conditions[0]]]
        for index, condition in enumerate(conditions[1:]):
            operator = logical_operators[index] if index < len(logical_operators) else "AND"
            if operator == "OR":
                runs[-1].append(condition)
            else:
                runs.append([condition])

        filters: List[Union[FilterClause, FilterGroup]] = []
        for run in runs:
            clauses: List[Union[FilterClause, FilterGroup]] = []
            for node in (self._condition_to_clause(cond) for cond in run):
                if isinstance(node, FilterGroup) and len(run) > 1:
                    clauses.extend(node.clauses)
                elif node:
                    clauses.append(node)
            if len(clauses) == 1:
                filters.append(clauses[0])
            elif len(clauses) > 1:
                filters.append(FilterGroup(logic="OR", clauses=clauses))
        return filters


# =============================================================================
# Module-level API
# =============================================================================

DEFAULT_DECOMPOSER = QueryDecomposer()


def decompose(
    raw_text: Optional[str],
    entity_bag: Optional[EntityBag],
    dataset_name: str = DEFAULT_DATASET,
) -> StructuredQuery:
    return DEFAULT_DECOMPOSER.decompose(raw_text, entity_bag, dataset_name)
