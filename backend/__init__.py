"""Streamhub backend services."""
