"""Parsing of detee-cli output into domain records."""

from .extract import sanitize
from .output import OutputParser

__all__ = ["OutputParser", "sanitize"]
