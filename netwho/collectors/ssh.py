from __future__ import annotations
import subprocess
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, TypeVar

from ..config import CFG
from ..errors import RemoteCommandError
from ..utils.log import get_logger, timed

logger = get_logger('ssh')

T = TypeVar("T")
R = TypeVar("R")

class SshRunner:
    """Runs shell commands on one remote host through the system ssh client."""

    def __init__(self, remote: str, cfg: Optional[CFG] = None):
        cfg = cfg or CFG()
        self.remote = remote
        self.options: List[str] = list(cfg.ssh_options)
        self.timeout = cfg.ssh_timeout

    def argv(self, command: str) -> List[str]:
        return ["ssh", *self.options, self.remote, command]

    @timed
    def run(self, command: str) -> str:
        logger.debug(f"ssh {self.remote} {command!r}")
        try:
            proc = subprocess.run(
                self.argv(command),
                stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                timeout=self.timeout, check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise RemoteCommandError(command, stderr=f"timed out after {e.timeout}s") from e
        except OSError as e:
            raise RemoteCommandError(command, stderr=str(e)) from e
        if proc.returncode != 0:
            raise RemoteCommandError(command, proc.returncode, proc.stderr.decode("utf-8", "replace"))
        # NUL bytes survive decoding; cmdline parsing relies on them
        return proc.stdout.decode("utf-8", "replace")

def bounded_map(fn: Callable[[T], R], items: Iterable[T], limit: int) -> List[R]:
    """Apply fn to every item with at most `limit` calls in flight. Results keep input order."""
    items = list(items)
    if not items:
        return []
    if limit <= 1:
        return [fn(x) for x in items]
    ex = ThreadPoolExecutor(max_workers=limit)
    try:
        futs = [ex.submit(fn, x) for x in items]
        results = [f.result() for f in futs]
    except BaseException:
        # Ctrl+C must not wait for the queued calls
        ex.shutdown(wait=False, cancel_futures=True)
        raise
    ex.shutdown()
    return results
