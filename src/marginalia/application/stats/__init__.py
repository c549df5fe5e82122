# Application Stats Package
from .metrics_calculator import EnrichedCard, MetricsCalculator, retrievability

__all__ = ["MetricsCalculator", "EnrichedCard", "retrievability"]
