from typing import Optional
from wikigraph.session import ExplorerSession

_session: Optional[ExplorerSession] = None


def set_session(session: Optional[ExplorerSession]) -> None:
    """Called from startup to register the shared ExplorerSession."""
    global _session
    _session = session


def get_session() -> ExplorerSession:
    """FastAPI dependency provider used by routes."""
    if _session is None:
        raise RuntimeError("ExplorerSession is not initialized (startup not completed).")
    return _session
