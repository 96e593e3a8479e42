"""Calendar sync domain - Settings cascade from projects down to single events

Settings are stored per level (project, track, subtrack, event) and resolved
on demand; the first explicit row wins, otherwise the user's global
preference applies.
"""

from .router import router

__all__ = ["router"]
