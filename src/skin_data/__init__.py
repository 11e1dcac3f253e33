"""Reference data shipped with the engine (read-only product catalog)."""
