"""
docktop - an interactive terminal dashboard for Docker resources.

Inspect containers, images, networks and volumes and drive container
lifecycle (start, stop, restart, kill, remove) from the keyboard without
leaving the terminal.

Main Components:
  - state.py: ResourceStore, the single source of truth for the UI
  - dispatcher.py: non-blocking lifecycle commands, one per resource
  - scheduler.py: periodic, token ordered refreshes
  - navigator.py: List / Detail view stack
  - controller.py: result channel and single-writer application of results
  - backend.py: docker-py wrapper
  - textual_app.py: Textual front end

Usage:
  docktop
  python -m docktop

Dependencies:
  - docker>=7.0.0 (requests for transport errors)
  - textual, rich
  - PyYAML
  - Python 3.10+
"""

import os
from pathlib import Path

__version__ = "0.1.0"


def get_log_path() -> str:
    """
    Get the log file path following the XDG Base Directory layout.

    Returns XDG_DATA_HOME/docktop/logs/docktop.log with fallback to /tmp.
    Creates directory if it doesn't exist.
    """
    xdg_data_home = os.environ.get('XDG_DATA_HOME')
    if not xdg_data_home:
        xdg_data_home = Path.home() / '.local' / 'share'
    else:
        xdg_data_home = Path(xdg_data_home)

    log_dir = xdg_data_home / 'docktop' / 'logs'

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return str(log_dir / 'docktop.log')
    except (PermissionError, OSError):
        return '/tmp/docktop.log'
