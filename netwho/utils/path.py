import os
from pathlib import Path
from typing import Optional

def to_abs_path(p: Optional[str | os.PathLike]) -> Optional[Path]:
    """Convert p to an absolute path.
    Sequence:
      1) Absolute or '~': expanduser+resolve
      2) Relative to CWD, if it exists there
      3) Relative to the home directory (where token files usually live)
    """
    if not p:
        return None
    pp = Path(p).expanduser()
    if pp.is_absolute():
        return pp.resolve()
    p1 = Path.cwd() / pp
    if p1.exists():
        return p1.resolve()
    return (Path.home() / pp).resolve()
