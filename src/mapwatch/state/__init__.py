"""State layer.

Owns the Active Set: the locations currently flagged on the map. This
is the only place that decides which cells produce an activation event.
"""

from mapwatch.state.tracker import StateTracker

__all__ = ["StateTracker"]
