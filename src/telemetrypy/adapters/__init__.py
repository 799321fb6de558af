"""Adapters connecting the core to schema documents and storage."""
