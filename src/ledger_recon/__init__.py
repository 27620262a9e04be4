"""Two-sided transaction reconciliation: canonicalization, matching and discrepancy detection."""

__version__ = "0.1.0"

from .config import ReconConfig, build_config, load_config
from .matching.engine import ReconciliationEngine

__all__ = ["ReconConfig", "ReconciliationEngine", "build_config", "load_config", "__version__"]
