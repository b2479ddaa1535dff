from __future__ import annotations
from typing import Dict, Iterable, List, Optional

from ..config import CFG, CMDLINE_PID_CMD, CMDLINE_SNAPSHOT_CMD, SS_LISTING_CMD
from ..errors import RemoteCommandError
from ..heuristics import DirectionPolicy
from ..models import AddressProcessMap, ConnRecord, ConnSummary, ProcInfo
from ..utils.log import get_logger
from ..utils.net import is_listening_key
from .ss import (connections_to_target, listeners_on_port, parse_cmdlines,
                 parse_foreign_addresses, parse_ss, split_cmdline)
from .ssh import bounded_map

logger = get_logger('remote')

def fetch_summaries(runner, policy: Optional[DirectionPolicy] = None) -> List[ConnSummary]:
    """Unique foreign addresses on the remote. Transport errors propagate."""
    out = runner.run(SS_LISTING_CMD)
    return parse_foreign_addresses(out, policy)

def fetch_process_sockets(runner, cfg: CFG) -> List[ConnRecord]:
    return parse_ss(runner.run(cfg.process_cmd))

def _fetch_one_cmdline(runner, pid: int) -> Optional[List[str]]:
    try:
        return split_cmdline(runner.run(CMDLINE_PID_CMD.format(pid=pid)))
    except RemoteCommandError as e:
        logger.debug(f"no cmdline for pid {pid}: {e}")
        return None

def fetch_cmdlines(runner, pids: Optional[Iterable[int]] = None, limit: int = 1) -> Dict[int, List[str]]:
    """
    Argument lists from /proc on the remote.

    With pids=None one batch snapshot of every process is taken; otherwise
    each pid is read on its own, at most `limit` ssh sessions at a time.
    Failures never raise: the affected pids are simply missing.
    """
    if pids is None:
        try:
            return parse_cmdlines(runner.run(CMDLINE_SNAPSHOT_CMD))
        except RemoteCommandError as e:
            logger.warning(f"could not read process table: {e}")
            return {}

    wanted = sorted({p for p in pids if p > 0})
    results = bounded_map(lambda pid: (pid, _fetch_one_cmdline(runner, pid)), wanted, limit)
    return {pid: args for pid, args in results if args is not None}

def _unique_procs(records: Iterable[ConnRecord], cmdlines: Dict[int, List[str]]) -> List[ProcInfo]:
    procs: List[ProcInfo] = []
    seen = set()
    for r in records:
        if r.pid <= 0 or r.pid in seen:
            continue
        seen.add(r.pid)
        procs.append(ProcInfo(pid=r.pid, name=r.process_name, args=list(cmdlines.get(r.pid, []))))
    return procs

def records_for_address(records: List[ConnRecord], address: str) -> List[ConnRecord]:
    if is_listening_key(address):
        try:
            port = int(address[1:])
        except ValueError:
            return []
        return listeners_on_port(records, port)
    return connections_to_target(records, address)

def correlate(addresses: Iterable[str], records: List[ConnRecord],
              cmdlines: Dict[int, List[str]]) -> AddressProcessMap:
    return {addr: _unique_procs(records_for_address(records, addr), cmdlines) for addr in addresses}

def _pids_for(addresses: Iterable[str], records: List[ConnRecord]) -> List[int]:
    pids = set()
    for addr in addresses:
        pids.update(r.pid for r in records_for_address(records, addr) if r.pid > 0)
    return sorted(pids)

def get_all_process_info(runner, addresses: List[str], cfg: Optional[CFG] = None) -> AddressProcessMap:
    cfg = cfg or CFG()
    logger.info(f"Getting process info for {len(addresses)} addresses")
    records = fetch_process_sockets(runner, cfg)
    if cfg.cmdline_mode == "per-pid":
        cmdlines = fetch_cmdlines(runner, _pids_for(addresses, records), cfg.concurrency)
    else:
        cmdlines = fetch_cmdlines(runner)
    return correlate(addresses, records, cmdlines)

def get_process_info_for_target(runner, target: str, cfg: Optional[CFG] = None) -> List[ProcInfo]:
    return get_all_process_info(runner, [target], cfg).get(target, [])
