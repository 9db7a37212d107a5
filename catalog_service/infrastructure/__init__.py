"""Infrastructure: settings, database, cache and logging."""
