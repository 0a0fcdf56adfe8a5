"""Common utilities and types for boxfile."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class FatalError(Exception):
    """Base for every error that halts a run.

    The CLI reports these as a single ``ERROR: <message>`` line and exits
    non-zero. Nothing is retried or downgraded to a warning.
    """


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    timeout: int = 600,
    capture: bool = True,
    env: Optional[dict] = None
) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr)."""
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=env,
            check=False  # We handle return codes explicitly
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return -1, '', f'Command timed out after {timeout}s'
    except FileNotFoundError:
        return -1, '', f'Command not found: {cmd[0]}'
    except OSError as e:
        return -1, '', str(e)
