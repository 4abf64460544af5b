"""Service layer orchestrating persistence around the domain models."""
