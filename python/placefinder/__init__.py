"""Place finder: LLM-driven place search with a synced map view."""
