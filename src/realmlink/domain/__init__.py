"""Domain layer: entities, exceptions and ports. No I/O in here."""
