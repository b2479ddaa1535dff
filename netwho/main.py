from __future__ import annotations
import argparse, sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .config import CFG, init_cfg_from_args
from .errors import NetwhoError
from .collectors.remote import fetch_summaries, get_all_process_info, get_process_info_for_target
from .collectors.ssh import SshRunner
from .geo import GeoEnricher, load_token
from .heuristics import DirectionPolicy, sort_summaries, display_executable
from .rules import build_labeler, load_rules
from .ui.picker import Investigator, build_choices, direction_of, print_processes
from .utils.jsonout import dumps
from .utils.log import get_logger, setup_logging

logger = get_logger('main')

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog='netwho', description='Find which remote process is talking to an IP, over ssh')
    ap.add_argument('remote', help='remote host to inspect (user@host)')
    ap.add_argument('target', nargs='?', default=None, help='only show processes talking to this IP (or listening on :PORT)')
    ap.add_argument('--token-file', type=str, default=None, help='ipinfo.io token file (default ~/ipinfo_token.txt)')
    ap.add_argument('--rules', type=str, default=None, help='YAML/JSON file with extra address label rules')
    ap.add_argument('--resolve', action='append', metavar='HOST', help='label the current addresses of HOST (repeatable)')
    ap.add_argument('--ssh-opt', action='append', metavar='OPT', help='extra argument passed to ssh (repeatable)')
    ap.add_argument('--ssh-timeout', type=float, default=None, help='seconds before a remote command is abandoned')
    ap.add_argument('--concurrency', type=int, default=1, help='ssh sessions in flight at once (default 1; more tends to hang)')
    ap.add_argument('--geo-workers', type=int, default=8, help='parallel ipinfo lookups')
    ap.add_argument('--ephemeral-floor', type=int, default=None, help='local ports above this count as outgoing (default 32768)')
    ap.add_argument('--cmdline-mode', choices=('batch', 'per-pid'), default='batch', help='read /proc in one snapshot or per pid')
    ap.add_argument('--no-sudo', action='store_true', help='run ss -tanp without sudo')
    ap.add_argument('--json', action='store_true', help='print the result as JSON instead of the picker')
    ap.add_argument('-v', '--verbose', action='store_true')
    ap.add_argument('--log-file', type=str, default=None)
    return ap

def investigate_target(runner, target: str, cfg: CFG, console: Console) -> None:
    procs = get_process_info_for_target(runner, target, cfg)
    if cfg.json_output:
        print(dumps({"target": target, "processes": procs}))
        return
    logger.info(f"{len(procs)} process(es) talking to {target}")
    print_processes(console, procs)
    console.print()

def investigate(runner, cfg: CFG, console: Console) -> None:
    extra = load_rules(cfg.rules_path)
    labeler = build_labeler(extra, cfg.resolve_hosts)

    conns = sort_summaries(fetch_summaries(runner, DirectionPolicy(cfg.ephemeral_floor)))
    logger.info(f"{len(conns)} addresses on {runner.remote}")

    geo = GeoEnricher(load_token(cfg.token_path), timeout=cfg.geo_timeout)
    if geo.enabled:
        geo.enrich_all([c.address for c in conns], workers=cfg.geo_workers)

    logger.info("Fetching process information...")
    procs = get_all_process_info(runner, [c.address for c in conns], cfg)

    if cfg.json_output:
        rows = [{
            "address": c.address,
            "direction": direction_of(c),
            "label": labeler.label(c.address),
            "location": geo.location(c.address),
            "executables": [display_executable(p) for p in procs.get(c.address, [])],
            "processes": procs.get(c.address, []),
        } for c in conns]
        print(dumps({"remote": runner.remote, "connections": rows}))
        return

    choices = build_choices(conns, labeler, geo.location, procs)
    Investigator(choices, procs, console=console).run()

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log_file = Path(args.log_file).expanduser().resolve() if args.log_file else None
    setup_logging(verbose=args.verbose, log_file=log_file)
    cfg = init_cfg_from_args(args)
    console = Console(highlight=False)
    runner = SshRunner(args.remote, cfg)
    try:
        if args.target:
            investigate_target(runner, args.target, cfg, console)
        else:
            investigate(runner, cfg, console)
    except KeyboardInterrupt:
        console.print("\nExiting...")
        return 0
    except NetwhoError as e:
        logger.error(str(e))
        return 1
    return 0

if __name__ == '__main__':
    sys.exit(main())
