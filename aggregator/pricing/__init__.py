"""Pool discovery, quote math, route ranking and the price service."""
