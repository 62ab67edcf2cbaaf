"""Work sessions: bounded units of work that tag audit entries."""

from .manager import SessionManager, duration
from .models import Session, SessionContext

__all__ = ["Session", "SessionContext", "SessionManager", "duration"]
