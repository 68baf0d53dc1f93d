"""Document storage for conversation sessions and summaries."""
