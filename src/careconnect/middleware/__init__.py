"""Middleware package."""
from .edge_gate import EdgeGateMiddleware

__all__ = ["EdgeGateMiddleware"]
