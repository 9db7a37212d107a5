"""Domain layer: error taxonomy, tenant scope and catalog value rules."""
