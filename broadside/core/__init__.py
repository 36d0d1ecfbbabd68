"""Board and fleet domain models."""
