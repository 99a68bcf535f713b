"""Application layer: store contract and use cases."""
