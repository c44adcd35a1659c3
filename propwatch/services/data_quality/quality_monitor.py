"""
PropWatch - Data Quality Monitor
Per-source extraction rate, response time and health, plus rollup
metrics and human-readable diagnostics.
"""

import logging
import statistics
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from propwatch.core.config import Settings, get_settings
from propwatch.models.domain import utcnow

logger = logging.getLogger(__name__)


class SourceHealth(str, Enum):
    """Health levels shared by sources and the rollup"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class SourceMetrics:
    """Latest invocation metrics for one source"""
    source: str
    games_found: int
    props_extracted: int
    extraction_rate: float
    response_time_ms: float
    status: SourceHealth
    errors: List[str] = field(default_factory=list)
    recorded_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "games_found": self.games_found,
            "props_extracted": self.props_extracted,
            "extraction_rate": round(self.extraction_rate, 2),
            "response_time_ms": round(self.response_time_ms, 1),
            "status": self.status.value,
            "errors": list(self.errors),
            "recorded_at": self.recorded_at.isoformat(),
        }


@dataclass
class AggregateStats:
    total_props: int = 0
    active_sources: int = 0
    average_response_time_ms: float = 0.0
    overall_health: SourceHealth = SourceHealth.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_props": self.total_props,
            "active_sources": self.active_sources,
            "average_response_time_ms": round(self.average_response_time_ms, 1),
            "overall_health": self.overall_health.value,
        }


@dataclass
class Diagnostics:
    critical_issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    performance_insights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "critical_issues": list(self.critical_issues),
            "recommendations": list(self.recommendations),
            "performance_insights": list(self.performance_insights),
        }


class DataQualityMonitor:
    """
    Passive observer of connector invocations.

    Keeps only the latest metrics per source; every ``record`` call
    recomputes the rollup.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.degraded_rate = settings.QUALITY_DEGRADED_RATE
        self.critical_rate = settings.QUALITY_CRITICAL_RATE
        self.healthy_ratio = settings.QUALITY_HEALTHY_RATIO
        self.slow_response_ms = settings.QUALITY_SLOW_RESPONSE_MS
        self.slow_average_ms = settings.QUALITY_SLOW_AVERAGE_MS
        self.low_coverage_props = settings.QUALITY_LOW_COVERAGE_PROPS

        self._sources: Dict[str, SourceMetrics] = {}
        self._aggregate = AggregateStats()
        self._updated_at: datetime = utcnow()

    def record(
        self,
        source: str,
        games_found: int,
        props_extracted: int,
        response_time_ms: float,
        errors: Optional[List[str]] = None,
    ) -> SourceMetrics:
        """Record one connector invocation and refresh the rollup"""
        errors = list(errors or [])
        rate = (props_extracted / games_found) * 100 if games_found > 0 else 0.0

        if errors:
            status = SourceHealth.FAILED
        elif rate < self.degraded_rate:
            status = SourceHealth.DEGRADED
        else:
            status = SourceHealth.HEALTHY

        metrics = SourceMetrics(
            source=source,
            games_found=games_found,
            props_extracted=props_extracted,
            extraction_rate=rate,
            response_time_ms=response_time_ms,
            status=status,
            errors=errors,
        )
        self._sources[source] = metrics
        self._update_aggregate()
        self._updated_at = metrics.recorded_at

        if status is SourceHealth.FAILED:
            logger.warning(f"[DataQuality] {source} failed: {'; '.join(errors)}")
        else:
            logger.debug(
                f"[DataQuality] {source}: {props_extracted}/{games_found} "
                f"({rate:.1f}%) in {response_time_ms:.0f}ms -> {status.value}"
            )
        return metrics

    def _update_aggregate(self) -> None:
        sources = list(self._sources.values())
        self._aggregate = AggregateStats(
            total_props=sum(s.props_extracted for s in sources),
            active_sources=sum(1 for s in sources if s.status is not SourceHealth.FAILED),
            average_response_time_ms=statistics.mean(s.response_time_ms for s in sources) if sources else 0.0,
            overall_health=self._overall_health(sources),
        )

    def _overall_health(self, sources: List[SourceMetrics]) -> SourceHealth:
        healthy = sum(1 for s in sources if s.status is SourceHealth.HEALTHY)
        if not sources or healthy == 0:
            return SourceHealth.FAILED
        if healthy / len(sources) >= self.healthy_ratio:
            return SourceHealth.HEALTHY
        return SourceHealth.DEGRADED

    @property
    def aggregate(self) -> AggregateStats:
        return self._aggregate

    def get_source(self, source: str) -> Optional[SourceMetrics]:
        return self._sources.get(source)

    def get_diagnostics(self) -> Diagnostics:
        """Advisory strings for display; no consumer contract"""
        diagnostics = Diagnostics()

        for name, m in self._sources.items():
            if m.status is SourceHealth.FAILED:
                diagnostics.critical_issues.append(
                    f"{name}: Complete failure - {', '.join(m.errors)}"
                )

            if m.extraction_rate < self.critical_rate and m.games_found > 0:
                diagnostics.critical_issues.append(
                    f"{name}: Low extraction rate {m.extraction_rate:.1f}% "
                    f"({m.props_extracted}/{m.games_found} games)"
                )
                diagnostics.recommendations.append(
                    f"Investigate {name} parsing logic - may be missing nested data structures"
                )

            if m.response_time_ms > self.slow_response_ms:
                diagnostics.performance_insights.append(
                    f"{name}: Slow response time {m.response_time_ms:.0f}ms - consider caching or rate limiting"
                )

            if m.games_found > 10 and m.props_extracted < 5:
                diagnostics.recommendations.append(
                    f"{name}: Found {m.games_found} games but only {m.props_extracted} props - check endpoint depth"
                )

        return diagnostics

    def get_actionable_insights(self) -> List[str]:
        insights = []
        diagnostics = self.get_diagnostics()

        if diagnostics.critical_issues:
            insights.append(f"CRITICAL: {len(diagnostics.critical_issues)} source issue(s)")
        if self._aggregate.total_props < self.low_coverage_props:
            insights.append(f"LOW COVERAGE: Only {self._aggregate.total_props} props across all sources")
        if self._aggregate.average_response_time_ms > self.slow_average_ms:
            insights.append(
                f"PERFORMANCE: Average response time {self._aggregate.average_response_time_ms:.0f}ms"
            )
        return insights

    def get_current_metrics(self) -> Dict[str, Any]:
        """Snapshot copy of per-source metrics and the rollup"""
        return {
            "timestamp": self._updated_at.isoformat(),
            "sources": {name: m.to_dict() for name, m in self._sources.items()},
            "aggregate": self._aggregate.to_dict(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.get_current_metrics(),
            "diagnostics": self.get_diagnostics().to_dict(),
            "insights": self.get_actionable_insights(),
        }

    def reset(self) -> None:
        self._sources.clear()
        self._aggregate = AggregateStats()
        self._updated_at = utcnow()


_data_quality_monitor: Optional[DataQualityMonitor] = None


def get_data_quality_monitor() -> DataQualityMonitor:
    """
    Dependency-style accessor for the data quality monitor.
    Keeps imports stable and avoids circular imports.
    """
    global _data_quality_monitor
    if _data_quality_monitor is None:
        _data_quality_monitor = DataQualityMonitor()
    return _data_quality_monitor
