"""Transformation pipelines.

- transformer.py: Transformer
  - Feeds -> feed chain -> (aggregate) -> market-map chain -> validate
"""

from marketmap_generator.transformation.pipelines.transformer import Transformer

__all__ = ["Transformer"]
