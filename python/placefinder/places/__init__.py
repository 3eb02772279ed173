"""Places proxy client and models."""
