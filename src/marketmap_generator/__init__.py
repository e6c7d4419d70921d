"""
Market map generation.
Turns indexed venue observations into a deterministic oracle market map.

Modules:
- shared: Value types (pairs, feeds, markets), removal reasons, exceptions
- config: Generation configuration and its loader
- storage: Provider data snapshot and store
- transformation: Feed transforms, aggregation, market-map transforms
- generation: Querier and generator orchestration
- infrastructure: Structured logging
"""

__version__ = "0.1.0"
