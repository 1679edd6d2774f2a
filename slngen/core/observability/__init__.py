from .metrics import RunMetrics

__all__ = ["RunMetrics"]
