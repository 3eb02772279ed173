"""Local language-model capability (Ollama)."""
