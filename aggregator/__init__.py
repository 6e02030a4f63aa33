"""DEX swap aggregator: route pricing, execution planning and a reference executor."""

from aggregator.service import SwapAggregator, get_default_aggregator

__version__ = "0.1.0"
__all__ = ["SwapAggregator", "get_default_aggregator", "__version__"]
