"""Rating collaborators used by the tournament summarizer."""
