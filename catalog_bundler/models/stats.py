"""
Dataclasses for tracking catalog build and bundle assembly statistics.
"""

from dataclasses import dataclass, field


@dataclass
class BuildStats:
    """Counters collected during one catalog builder run."""

    categories: int = 0
    files_indexed: int = 0
    skipped_hidden: int = 0
    skipped_extension: int = 0
    unreadable: list[str] = field(default_factory=list)
    duration_s: float = 0.0


@dataclass
class BundleStats:
    """The aggregate outcome of one bundle assembly."""

    requested: int = 0
    fetched: int = 0
    failed: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)
    total_bytes: int = 0
    duration_s: float = 0.0

    @property
    def success_rate(self) -> float:
        """Fraction of requested files that made it into the bundle."""
        if self.requested == 0:
            return 0.0
        return self.fetched / self.requested
