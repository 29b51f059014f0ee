from .orchestrator import Orchestrator
from .types import SessionCount

__all__ = ["Orchestrator", "SessionCount"]
