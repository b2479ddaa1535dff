"""Parsers for `ss -tan[p]` output and the remote cmdline snapshot.

All knowledge of the ss column layout lives in parse_ss():
    State  Recv-Q  Send-Q  Local-Address:Port  Peer-Address:Port  [Process]
"""
import re
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import WILDCARD_ADDRS
from ..heuristics import DirectionPolicy
from ..models import ConnRecord, ConnState, ConnSummary
from ..utils.log import get_logger
from ..utils.net import listening_key

logger = get_logger('ss')

PID_RE = re.compile(r"pid=(?P<pid>\d+)")
NAME_RE = re.compile(r"\(\"(?P<name>[^\"]+)\"")
HEADER_FIRST_COLS = {"State", "Netid"}

def _safe_int(s: str, default: int = 0) -> int:
    try:
        return int(s)
    except ValueError:
        return default

def parse_addr(addr: str) -> Tuple[str, int]:
    """
    Split at the last colon; the host keeps whatever ss printed.
      - '1.2.3.4:5678'     -> ('1.2.3.4', 5678)
      - '[::ffff:1.2.3.4]:443' -> ('[::ffff:1.2.3.4]', 443)
      - '0.0.0.0:*'        -> ('0.0.0.0', 0)
      - '*'                -> ('*', 0)
    """
    if not addr or addr == '*':
        return ('*', 0)
    if ':' not in addr:
        return (addr, 0)
    host, port = addr.rsplit(':', 1)
    if port in ('*', ''):
        return (host, 0)
    return (host, _safe_int(port, 0))

def _is_header(line: str, parts: List[str]) -> bool:
    return parts[0] in HEADER_FIRST_COLS or "Peer Address" in line

def parse_process_annotation(text: str) -> Tuple[int, str]:
    """users:(("nginx",pid=1234,fd=6)) -> (1234, 'nginx'); (0, 'unknown') without pid."""
    mpid = PID_RE.search(text)
    if not mpid:
        return 0, "unknown"
    mname = NAME_RE.search(text)
    return int(mpid.group("pid")), (mname.group("name") if mname else "unknown")

def parse_ss_line(line: str) -> Optional[ConnRecord]:
    parts = line.split()
    if len(parts) < 5:
        return None
    state = ConnState.from_ss(parts[0])
    local, foreign = parts[3], parts[4]
    if ':' not in local and ':' not in foreign:
        return None
    laddr, lport = parse_addr(local)
    raddr, rport = parse_addr(foreign)
    pid, name = parse_process_annotation(" ".join(parts[5:]))
    return ConnRecord(
        local_address=laddr, local_port=lport,
        foreign_address=raddr, foreign_port=rport,
        state=state, pid=pid, process_name=name,
    )

def parse_ss(text: str) -> List[ConnRecord]:
    records: List[ConnRecord] = []
    skipped = 0
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if _is_header(stripped, stripped.split()):
            continue
        rec = parse_ss_line(stripped)
        if rec is None:
            skipped += 1
            logger.debug(f"unparsed ss line: {stripped!r}")
            continue
        records.append(rec)
    if skipped:
        logger.warning(f"skipped {skipped} ss line(s) with an unexpected layout")
    return records

def summarize(records: Iterable[ConnRecord], policy: Optional[DirectionPolicy] = None) -> List[ConnSummary]:
    """Aggregate records by foreign address (or ':PORT' for listeners)."""
    policy = policy or DirectionPolicy()
    seen: Dict[str, bool] = {}
    for rec in records:
        if rec.state is ConnState.TIME_WAIT:
            continue
        addr = rec.foreign_address
        if addr in WILDCARD_ADDRS:
            if rec.state is not ConnState.LISTEN or not rec.local_port:
                continue
            # listeners sort with the outgoing group
            seen[listening_key(rec.local_port)] = True
            continue
        if not addr:
            continue
        seen[addr] = seen.get(addr, False) or policy.is_outgoing(rec.local_port)
    return [ConnSummary(address=a, is_outgoing=o) for a, o in seen.items()]

def parse_foreign_addresses(text: str, policy: Optional[DirectionPolicy] = None) -> List[ConnSummary]:
    return summarize(parse_ss(text), policy)

def connections_to_target(records: Iterable[ConnRecord], target: str) -> List[ConnRecord]:
    return [r for r in records if r.foreign_address == target]

def listeners_on_port(records: Iterable[ConnRecord], port: int) -> List[ConnRecord]:
    return [r for r in records if r.state is ConnState.LISTEN and r.local_port == port]

def split_cmdline(text: str) -> List[str]:
    return [a for a in text.split('\0') if a]

def parse_cmdlines(text: str) -> Dict[int, List[str]]:
    """Parse 'PID:<NUL separated argv>' lines from the batch snapshot."""
    cmdlines: Dict[int, List[str]] = {}
    for line in text.split('\n'):
        if not line.strip():
            continue
        pid_str, sep, data = line.partition(':')
        if not sep:
            continue
        pid = _safe_int(pid_str.strip(), -1)
        if pid < 0:
            continue
        cmdlines[pid] = split_cmdline(data)
    return cmdlines
