"""Validation and sanity checks for Markov cohort models."""

from .sanity_checks import SanityChecker, ValidationWarning, validate_model_result

__all__ = [
    "SanityChecker",
    "ValidationWarning",
    "validate_model_result"
]
