"""Infrastructure layer: HTTP adapters, in-memory stubs and observability."""
