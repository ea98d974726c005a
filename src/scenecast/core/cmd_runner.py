"""
Subprocess wrapper for external tools (ffmpeg).

Output is captured as text; the exit status is either checked here
(CommandError) or left to the caller with check=False.
"""

import os
import shlex
import subprocess
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..logger import logger

# Characters of stderr kept in CommandError messages
STDERR_TAIL = 800


class CommandError(Exception):
    """A checked command exited non-zero."""

    def __init__(self, cmd: List[str], returncode: int, stdout: str, stderr: str):
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        tail = (stderr or "").strip()[-STDERR_TAIL:]
        super().__init__(f"{cmd[0]} exited with {returncode}" + (f": {tail}" if tail else ""))


def run_command(
    cmd: List[str],
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
    check: bool = True,
    capture_output: bool = True,
    log_output: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run `cmd` and wait for it.

    Args:
        cwd: working directory
        env: extra variables layered over os.environ
        timeout: seconds; None waits indefinitely
        check: raise CommandError on non-zero exit
        log_output: echo captured stdout/stderr at DEBUG

    Raises:
        CommandError: check=True and non-zero exit
        subprocess.TimeoutExpired: timeout elapsed
        OSError: the executable could not be started
    """
    display = shlex.join(str(part) for part in cmd)
    logger.debug(f"$ {display}" + (f"  (in {cwd})" if cwd else ""))

    started = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env={**os.environ, **env} if env else None,
            timeout=timeout,
            check=False,
            capture_output=capture_output,
            text=True,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Timed out after {timeout}s: {display}")
        raise
    except OSError as e:
        logger.error(f"Could not start {cmd[0]}: {e}")
        raise

    logger.debug(f"{cmd[0]} exited with {result.returncode} after {time.monotonic() - started:.2f}s")
    if log_output:
        for name, stream in (("stdout", result.stdout), ("stderr", result.stderr)):
            if stream:
                logger.debug(f"{cmd[0]} {name}:\n{stream.rstrip()}")

    if check and result.returncode != 0:
        raise CommandError(cmd, result.returncode, result.stdout, result.stderr)
    return result
