from __future__ import annotations
from pathlib import Path
import json
import re
import socket
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
try:
    import yaml  # type: ignore
except Exception:
    yaml = None

from .config import DEFAULT_ADDR_RULES
from .errors import RulesError
from .utils.log import get_logger
from .utils.path import to_abs_path

logger = get_logger('rules')

Resolver = Callable[[str], List[str]]

@dataclass
class AddrRule:
    pattern: str
    label: str
    regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.regex = re.compile(self.pattern)

    @classmethod
    def prefix(cls, prefix: str, label: str) -> "AddrRule":
        return cls("^" + re.escape(prefix), label)

    def matches(self, addr: str) -> bool:
        return self.regex.search(addr) is not None

@dataclass
class RuleSet:
    rules: List[AddrRule] = field(default_factory=list)
    hostnames: List[str] = field(default_factory=list)

def _rule_from_entry(entry) -> AddrRule:
    if not isinstance(entry, dict) or "label" not in entry:
        raise RulesError(f"rule needs a label: {entry!r}")
    if "prefix" in entry:
        return AddrRule.prefix(str(entry["prefix"]), str(entry["label"]))
    if "pattern" in entry:
        pattern = str(entry["pattern"])
        try:
            return AddrRule(pattern, str(entry["label"]))
        except re.error as e:
            raise RulesError(f"bad pattern {pattern!r}: {e}") from e
    raise RulesError(f"rule needs 'pattern' or 'prefix': {entry!r}")

def load_rules(path: Optional[str | Path]) -> RuleSet:
    """Read extra label rules from YAML or JSON.

    Accepts either a bare list of {pattern|prefix, label} entries or a mapping
    with optional 'rules' and 'hostnames' keys.
    """
    if not path:
        return RuleSet()
    p = to_abs_path(path)
    if not p:
        return RuleSet()
    if not p.exists():
        logger.warning(f"rules not found: {p}")
        return RuleSet()
    txt = p.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(txt) if yaml and p.suffix in (".yaml", ".yml") else json.loads(txt)
    except (ValueError, getattr(yaml, "YAMLError", ValueError)) as e:
        raise RulesError(f"cannot parse rules file {p}: {e}") from e
    if data is None:
        return RuleSet()
    if isinstance(data, list):
        return RuleSet(rules=[_rule_from_entry(r) for r in data])
    if isinstance(data, dict):
        return RuleSet(
            rules=[_rule_from_entry(r) for r in (data.get("rules") or [])],
            hostnames=[str(h) for h in (data.get("hostnames") or [])],
        )
    raise RulesError(f"unexpected rules file layout in {p}")

def resolve_ipv4(hostname: str) -> List[str]:
    return socket.gethostbyname_ex(hostname)[2]

def resolve_hostname_rules(hostnames: Iterable[str], resolver: Resolver = resolve_ipv4) -> List[AddrRule]:
    rules: List[AddrRule] = []
    for host in hostnames:
        try:
            addrs = resolver(host)
        except (OSError, UnicodeError) as e:
            logger.warning(f"could not resolve {host}: {e}")
            continue
        rules.extend(AddrRule.prefix(a, host) for a in addrs)
    return rules

class AddrLabeler:
    """First matching rule names the address; otherwise the address is its own label."""

    def __init__(self, rules: Sequence[AddrRule]):
        self.rules = list(rules)

    def label(self, addr: str) -> str:
        for rule in self.rules:
            if rule.matches(addr):
                return rule.label
        return addr

def build_labeler(extra: Optional[RuleSet] = None, hostnames: Iterable[str] = (),
                  resolver: Resolver = resolve_ipv4,
                  defaults: Sequence[Tuple[str, str]] = DEFAULT_ADDR_RULES) -> AddrLabeler:
    """Static defaults, then rules from file, then resolved hostnames."""
    extra = extra or RuleSet()
    rules = [AddrRule(p, l) for p, l in defaults]
    rules.extend(extra.rules)
    rules.extend(resolve_hostname_rules([*extra.hostnames, *hostnames], resolver))
    return AddrLabeler(rules)
