"""Runs every registered extraction strategy against a page and merges the results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..logging_config import get_logger
from ..merge import merge_strategy_results
from ..models import ReviewRecord
from ..parser_utils import Document, parse_html
from .base import STRATEGY_REGISTRY, ExtractionStrategy

logger = get_logger("extractors.engine")


@dataclass
class StrategyResult:
    """Records produced by one strategy for one page."""

    name: str
    records: List[ReviewRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


def default_strategies() -> List[ExtractionStrategy]:
    """Instantiate every registered strategy, highest priority first."""
    classes = sorted(STRATEGY_REGISTRY.values(), key=lambda cls: cls.priority)
    return [cls() for cls in classes]


class RecordExtractor:
    """Apply the extraction strategies in priority order.

    A strategy that raises is logged and contributes no records; the others
    still run, so one broken heuristic cannot empty a page.
    """

    def __init__(self, strategies: Optional[Sequence[ExtractionStrategy]] = None) -> None:
        if strategies is None:
            strategies = default_strategies()
        self.strategies = sorted(strategies, key=lambda strategy: strategy.priority)

    def extract(self, document: Document, *, year_hint: Optional[int] = None) -> List[StrategyResult]:
        soup = parse_html(document)
        results: List[StrategyResult] = []
        for strategy in self.strategies:
            try:
                records = strategy.extract(soup, year_hint=year_hint)
            except Exception as exc:
                logger.warning(f"Strategy {strategy.name} failed: {exc}")
                results.append(StrategyResult(name=strategy.name, error=str(exc) or type(exc).__name__))
                continue
            results.append(StrategyResult(name=strategy.name, records=records))
        return results

    def extract_merged(self, document: Document, *, year_hint: Optional[int] = None) -> List[ReviewRecord]:
        """Extract with every strategy and merge into one de-duplicated list."""
        results = self.extract(document, year_hint=year_hint)
        merged = merge_strategy_results([result.records for result in results])
        counts = ", ".join(f"{result.name}={len(result.records)}" for result in results)
        logger.debug(f"Extracted {len(merged)} records ({counts})")
        return merged
