"""Core domain: schema types, registry and the histogram engine."""
