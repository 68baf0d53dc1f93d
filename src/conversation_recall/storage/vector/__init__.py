"""Namespaced vector storage for conversation summaries."""
