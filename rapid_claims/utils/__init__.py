"""Utility modules for configuration, logging, errors and AWS integration."""

from .config import Config
from .errors import (
    ClaimsProcessingError,
    IngestionError,
    AnalysisError,
    ProtocolInvariantViolation,
    ConfigurationError,
)

__all__ = [
    'Config',
    'ClaimsProcessingError',
    'IngestionError',
    'AnalysisError',
    'ProtocolInvariantViolation',
    'ConfigurationError'
]
