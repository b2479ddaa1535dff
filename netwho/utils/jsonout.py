from __future__ import annotations
import json as stdjson
from dataclasses import asdict, is_dataclass
from enum import Enum

try:
    import orjson as _oj
    def _dumps(obj): return _oj.dumps(obj, option=_oj.OPT_INDENT_2).decode()
except Exception:
    _oj = None
    def _dumps(obj): return stdjson.dumps(obj, indent=2)

def to_plain(obj):
    if is_dataclass(obj) and not isinstance(obj, type):
        return {k: to_plain(v) for k, v in asdict(obj).items()}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {str(k): to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_plain(v) for v in obj]
    return obj

def dumps(obj) -> str:
    return _dumps(to_plain(obj))
