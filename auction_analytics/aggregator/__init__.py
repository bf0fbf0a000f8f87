"""Auction records, the event reducer, and its pure helpers."""
