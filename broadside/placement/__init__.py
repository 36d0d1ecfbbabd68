"""Pure placement validation, scoring and the interactive placement state machine."""
