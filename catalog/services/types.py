"""
Result types returned by the catalog orchestrator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID


@dataclass
class RefreshResult:
    """
    Outcome of one orchestrator call.

    `items` holds the persisted (or cached) rows; `total` is the provider's
    reported total for paginated listings and len(items) otherwise.
    """

    items: List[Any] = field(default_factory=list)
    total: int = 0
    from_cache: bool = False
    job_id: Optional[UUID] = None

    # False when the call degraded to cached/placeholder data
    success: bool = True
    error: Optional[str] = None

    # Items dropped during normalization or persistence
    skipped: int = 0

    @property
    def count(self) -> int:
        return len(self.items)

    def to_job_result(self) -> Dict[str, Any]:
        """Summary returned to the job queue."""
        return {
            "success": self.success,
            "count": self.count,
            "total": self.total,
        }
