"""
Label allocation for generated control flow.

Comparisons and call sites need labels that are unique across the whole
program, not just one unit. One LabelAllocator is shared by every unit
of a program and is never reset between them.
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class LabelAllocator:
    """Two independent monotonic counters."""
    comparison: int = 0
    call_site: int = 0

    def next_comparison(self) -> int:
        """Return the current comparison number and advance."""
        n = self.comparison
        self.comparison += 1
        return n

    def next_call_site(self) -> int:
        """Return the current call-site number and advance."""
        n = self.call_site
        self.call_site += 1
        return n
