"""Sweep result schema."""

from pydantic import BaseModel


class SweepResult(BaseModel):
    """Counts of the transitions applied by one sweep run."""

    renewed: int = 0
    expired: int = 0
    converted: int = 0
    failed: int = 0
    skipped: bool = False

    @property
    def changed(self) -> int:
        """Total subscriptions changed by the run."""
        return self.renewed + self.expired + self.converted
