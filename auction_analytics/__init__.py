"""In-memory aggregation of header-bidding auction events for analytics reporting."""
