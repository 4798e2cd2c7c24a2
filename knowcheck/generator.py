"""Identifier generators."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod


class IDGenerator(ABC):
    """Source of numeric identifiers."""

    @abstractmethod
    def generate_id(self) -> int:
        """Return a new identifier."""


class TimeIDGenerator(IDGenerator):
    """Generates identifiers from the current time in nanoseconds."""

    def generate_id(self) -> int:
        return time.time_ns()