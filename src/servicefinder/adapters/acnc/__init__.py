"""Public interface for the ACNC charity register adapter."""

from __future__ import annotations

from .client import AcncAdapter
from .schema import AcncCharity
from .translator import SOURCE_NAME, translate_charity

__all__ = ["SOURCE_NAME", "AcncAdapter", "AcncCharity", "translate_charity"]
