"""
Fixed keymap: raw key names to semantic actions.

Keys use Textual's key names ("j", "down", "delete", "enter", ...). The
mapping is not configurable.

  j / down      move down          k / up       move up
  q / escape    back, or quit      t            toggle running-only filter
  r             restart if running, start otherwise
  s             stop               x            kill
  d / delete    remove             enter        open details
  f             force remove (images and volumes)
  1 2 3 4       containers, images, networks, volumes
"""

from typing import Dict, Optional
from .model import Action

KEYMAP: Dict[str, Action] = {
    "j": Action.MOVE_DOWN,
    "down": Action.MOVE_DOWN,
    "k": Action.MOVE_UP,
    "up": Action.MOVE_UP,
    "q": Action.BACK,
    "escape": Action.BACK,
    "t": Action.TOGGLE_FILTER,
    "s": Action.STOP,
    "x": Action.KILL,
    "d": Action.REMOVE,
    "delete": Action.REMOVE,
    "f": Action.FORCE_REMOVE,
    "enter": Action.OPEN,
    "1": Action.SHOW_CONTAINERS,
    "2": Action.SHOW_IMAGES,
    "3": Action.SHOW_NETWORKS,
    "4": Action.SHOW_VOLUMES,
}


def resolve_key(key: str, target_running: bool = False) -> Optional[Action]:
    """
    Map a key to an action, or None for unbound keys.

    `r` is context-sensitive: Restart when the targeted resource is running,
    Start otherwise.
    """
    key = key.lower() if len(key) == 1 else key
    if key == "r":
        return Action.RESTART if target_running else Action.START
    return KEYMAP.get(key)
