"""Card catalog services: filters, ordering, search tokens and queries."""
