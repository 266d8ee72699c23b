"""SSH transport to the adapter.

:func:`open_session` authenticates, opens an exec channel running
``tail -f`` on the remote log and hands back a :class:`SessionHandle`
whose binary stdout is the line source.
"""

from .ssh_client import SessionFactory, SessionHandle, build_follow_command, open_session

__all__ = ["SessionFactory", "SessionHandle", "build_follow_command", "open_session"]
