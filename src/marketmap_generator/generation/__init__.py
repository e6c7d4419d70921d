"""Generation orchestration: querier and generator."""

from marketmap_generator.generation.generator import Generator
from marketmap_generator.generation.querier import Querier, to_feed

__all__ = ["Generator", "Querier", "to_feed"]
