"""IO - remote backends the logger emits to."""
