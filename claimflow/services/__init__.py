"""Domain services: approval engine, claim store and integrations."""
