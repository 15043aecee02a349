"""Route strategies for reaching origin-restricted endpoints."""

from .chain import RequestDirective, Route, RouteChain, RouteContext
from .strategies import DirectRoute, RewriteRoute, build_chain

__all__ = [
    "DirectRoute",
    "RequestDirective",
    "RewriteRoute",
    "Route",
    "RouteChain",
    "RouteContext",
    "build_chain",
]
