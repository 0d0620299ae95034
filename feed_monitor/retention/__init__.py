"""Age-based retention of stored feed payloads."""

from .policy import cutoff, is_expired

__all__ = ["cutoff", "is_expired"]
