"""
Entry point: `docktop` or `python -m docktop`.

Exit codes:
  0 - the operator quit
  1 - the container engine could not be reached at startup
"""

import logging
import sys

from . import get_log_path
from .backend import DockerBackend
from .config import config_manager
from .errors import EngineError

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    level = getattr(logging, config_manager.get_log_level(), logging.INFO)
    logging.basicConfig(filename=config_manager.get_custom_log_path() or get_log_path(), level=level,
                        format='%(asctime)s - %(levelname)s - %(message)s')


def main() -> int:
    setup_logging()
    logger.info("docktop starting")

    backend = DockerBackend(base_url=config_manager.get_base_url(),
                            timeout=config_manager.get_command_timeout())
    try:
        backend.connect()
    except EngineError as e:
        logger.error(f"Cannot reach the container engine: {e.status_text()}")
        print(f"docktop: cannot reach the container engine ({e.status_text()})", file=sys.stderr)
        return 1

    # Textual is imported late so a failed connection exits without touching the terminal
    from .controller import Dashboard
    from .textual_app import run

    dashboard = Dashboard(
        backend,
        refresh_interval=config_manager.get_refresh_interval(),
        command_timeout=config_manager.get_command_timeout(),
        refresh_timeout=config_manager.get_refresh_timeout(),
    )
    try:
        run(dashboard)
    finally:
        backend.close()
    logger.info("docktop exited")
    return 0


if __name__ == "__main__":
    sys.exit(main())
