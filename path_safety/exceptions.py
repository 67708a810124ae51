# -*- coding: utf-8 -*-
"""
path_safety/exceptions.py

Error taxonomy for the trajectory safety check.

- ConfigurationError: parameters rejected at construction / load time
- InvalidInputError: the candidate (ego) side cannot be judged at all
"""


class SafetyCheckError(Exception):
    """Base class for all safety check failures."""


class ConfigurationError(SafetyCheckError, ValueError):
    """Raised when safety parameters are invalid (e.g. zero deceleration)."""


class InvalidInputError(SafetyCheckError, ValueError):
    """Raised when the ego trajectory or ego geometry is unusable."""
