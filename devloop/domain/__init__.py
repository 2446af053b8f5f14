"""Domain-layer abstractions shared by the component modules."""
