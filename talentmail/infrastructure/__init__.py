"""Infrastructure: persistence, external providers, and services."""
