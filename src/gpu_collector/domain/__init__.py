"""Domain layer: topology entities, filters and the services that use them."""
