"""Infrastructure layer - file storage, Xbox Live / Realms HTTP clients, logging, lifecycle."""
