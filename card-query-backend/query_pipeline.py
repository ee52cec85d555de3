"""
QueryPipeline - Pure Orchestration Controller

Runs one card question through:
- Entity extraction
- Query decomposition
- Query execution over the caller's records

Contains NO decision logic; every decision belongs to one of the three
stages.  Synchronous: no suspension points, no shared mutable state.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from entity_extractor import EntityBag, EntityExtractor
from field_mapper import FIELD_MAPPER
from query_decomposer import DEFAULT_DATASET, QueryDecomposer, StructuredQuery
from query_executor import ExecutionResult, QueryExecutor
from query_vocabulary import DEFAULT_VOCABULARY, QueryVocabulary

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG
# =============================================================================

@dataclass(frozen=True)
class PipelineConfig:
    """Read-only knobs shared by every invocation."""
    amount_min_digits: int = 3
    amount_allow_k: bool = True

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build from AMOUNT_MIN_DIGITS / AMOUNT_ALLOW_K; bad values fall back to defaults."""
        try:
            min_digits = int(os.getenv("AMOUNT_MIN_DIGITS", "3"))
        except ValueError:
            logger.warning("[PIPELINE] Invalid AMOUNT_MIN_DIGITS; using 3")
            min_digits = 3
        allow_k = os.getenv("AMOUNT_ALLOW_K", "true").strip().lower() in ("1", "true", "yes", "on")
        return cls(amount_min_digits=max(min_digits, 1), amount_allow_k=allow_k)


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class PipelineResult:
    """Result from pipeline."""
    success: bool
    execution_time: float
    entities: Optional[EntityBag] = None
    structured_query: Optional[StructuredQuery] = None
    result: Optional[ExecutionResult] = None
    error: Optional[str] = None


# =============================================================================
# QUERY PIPELINE
# =============================================================================

class QueryPipeline:
    """
    Pure orchestration. No decision logic.

    FLOW:
    1. Extract entities (text only)
    2. Decompose into a StructuredQuery
    3. Execute over the provided records

    Programmer misuse (records that are not a sequence of card rows) is
    reported as success=False; user text never produces a failure.
    """

    def __init__(
        self,
        config: PipelineConfig = PipelineConfig(),
        vocabulary: QueryVocabulary = DEFAULT_VOCABULARY,
        extractor: EntityExtractor = None,
        decomposer: QueryDecomposer = None,
        executor: QueryExecutor = None,
    ):
        self.config = config
        self.extractor = extractor or EntityExtractor(
            vocabulary,
            amount_min_digits=config.amount_min_digits,
            amount_allow_k=config.amount_allow_k,
        )
        self.decomposer = decomposer or QueryDecomposer(FIELD_MAPPER, vocabulary.issuer_networks)
        self.executor = executor or QueryExecutor()

        logger.info(f"QueryPipeline initialized ({config})")

    def handle(
        self,
        text: Optional[str],
        records: Sequence[Any],
        dataset: str = DEFAULT_DATASET,
    ) -> PipelineResult:
        """
        Main entry point.

        Returns a PipelineResult carrying every intermediate value so callers
        can show how a question was understood.
        """
        start = datetime.now()

        entities = self.extractor.extract(text)
        structured_query = self.decomposer.decompose(text, entities, dataset)

        try:
            result = self.executor.execute(structured_query, records)
        except TypeError as e:
            logger.warning(f"[PIPELINE] Rejected records: {e}")
            return PipelineResult(
                success=False,
                execution_time=self._elapsed(start),
                entities=entities,
                structured_query=structured_query,
                error=str(e),
            )

        elapsed = self._elapsed(start)
        logger.info(f"[PIPELINE] total={result.total} in {elapsed:.4f}s")
        return PipelineResult(
            success=True,
            execution_time=elapsed,
            entities=entities,
            structured_query=structured_query,
            result=result,
        )

    def _elapsed(self, start: datetime) -> float:
        return (datetime.now() - start).total_seconds()
