"""Outbound delivery of finished auction snapshots."""
