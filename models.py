"""
models.py — Job record for the itinerary service.

One Job per creation request, stored as one Firestore document keyed by the
job id.  The document holds every field except the id itself:

    destination   str
    durationDays  int  (> 0)
    status        'processing' | 'completed' | 'failed'
    createdAt     ISO-8601 UTC string, set once
    completedAt   ISO-8601 UTC string or null, set on entering a terminal state
    itinerary     list of Day dicts, empty unless completed
    error         str or null, set only when failed

Lifecycle:  processing → completed   or   processing → failed.  Terminal
records are never written again.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

STATUS_PROCESSING = 'processing'
STATUS_COMPLETED  = 'completed'
STATUS_FAILED     = 'failed'


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Job:
    id:            str
    destination:   str
    duration_days: int
    status:        str = STATUS_PROCESSING
    created_at:    str = field(default_factory=utcnow_iso)
    completed_at:  str | None = None
    itinerary:     list = field(default_factory=list)
    error:         str | None = None

    def to_dict(self):
        return {
            'destination':  self.destination,
            'durationDays': self.duration_days,
            'status':       self.status,
            'createdAt':    self.created_at,
            'completedAt':  self.completed_at,
            'itinerary':    self.itinerary,
            'error':        self.error,
        }

    @classmethod
    def from_dict(cls, job_id: str, data: dict) -> 'Job':
        return cls(
            id            = job_id,
            destination   = data.get('destination') or '',
            duration_days = data.get('durationDays') or 0,
            status        = data.get('status') or STATUS_PROCESSING,
            created_at    = data.get('createdAt') or '',
            completed_at  = data.get('completedAt'),
            itinerary     = data.get('itinerary') or [],
            error         = data.get('error'),
        )

    def __repr__(self):
        return f'<Job {self.id[:8]} {self.destination!r} status={self.status}>'


# ---------------------------------------------------------------------------
# Terminal updates (partial documents; the write mask is their key set)
# ---------------------------------------------------------------------------

def completed_fields(itinerary: list, completed_at: str | None = None) -> dict:
    return {
        'itinerary':   itinerary,
        'status':      STATUS_COMPLETED,
        'completedAt': completed_at or utcnow_iso(),
    }


def failed_fields(error: str, completed_at: str | None = None) -> dict:
    return {
        'status':      STATUS_FAILED,
        'error':       error,
        'completedAt': completed_at or utcnow_iso(),
    }
