"""Scan metrics for XML fragment extraction."""

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass
class ScanMetrics:
    """Counters collected while a parser scans one token stream."""

    tokens_read: int = 0
    start_elements: int = 0
    templates_started: int = 0
    headers_captured: int = 0
    fragments_emitted: int = 0
    elements_skipped: int = 0
    processing_time_ms: float = 0.0

    @property
    def fragments_per_second(self) -> float:
        """Calculate fragments emitted per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.fragments_emitted * 1000.0) / self.processing_time_ms

    @property
    def skip_rate(self) -> float:
        """Share of start elements that matched no role."""
        if self.start_elements == 0:
            return 0.0
        return self.elements_skipped / self.start_elements

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to a dictionary including derived rates."""
        data = asdict(self)
        data["fragments_per_second"] = self.fragments_per_second
        data["skip_rate"] = self.skip_rate
        return data
