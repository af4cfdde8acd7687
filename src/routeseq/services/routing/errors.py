"""Error types raised by the sequencing engine and its oracles."""

from __future__ import annotations


class SequencingError(Exception):
    """Base class for every error the engine reports."""


class InvalidInput(SequencingError, ValueError):
    """Raised for empty point sets, out-of-range indices or malformed coordinates."""


class OracleError(SequencingError):
    """Raised when the distance/duration or geocoding provider cannot answer."""
