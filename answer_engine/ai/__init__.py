"""Language model integration for answer generation."""
