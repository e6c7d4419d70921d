"""
Observability for the generation run: structured logs that make every
dropped feed and excluded market traceable to the stage that removed it.
"""

from .logging import (
    # Base logger factory
    get_logger,
    # Layer-specific logger factories
    get_cli_logger,
    get_generation_logger,
    get_infrastructure_logger,
    get_processing_logger,
    get_storage_logger,
    # Setup
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    # Base
    "get_logger",
    # Layer-specific
    "get_infrastructure_logger",
    "get_storage_logger",
    "get_generation_logger",
    "get_processing_logger",
    "get_cli_logger",
]
