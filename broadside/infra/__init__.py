"""Runtime configuration, logging and serialization."""
