"""Command-line tools for EM training."""
