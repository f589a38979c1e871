"""Export services: validation, wizard, upsert and pipeline."""
