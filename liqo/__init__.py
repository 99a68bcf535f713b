"""Jejak Liqo group membership backend."""
