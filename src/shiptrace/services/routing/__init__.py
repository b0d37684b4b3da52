"""Route generation: directions provider client and checkpoint sampling."""

from .sampler import sample_route
from .service import generate_route

__all__ = ["generate_route", "sample_route"]
