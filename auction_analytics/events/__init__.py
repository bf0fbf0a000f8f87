"""Host lifecycle events and their ingestion."""
