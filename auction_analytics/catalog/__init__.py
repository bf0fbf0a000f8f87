"""Host ad-unit catalog."""
