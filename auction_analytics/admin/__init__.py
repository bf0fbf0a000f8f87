"""Admin endpoints for inspecting the aggregator."""
