from __future__ import annotations
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.text import Text

from ..config import LISTING_LIMIT
from ..heuristics import display_executable
from ..models import AddressProcessMap, ConnSummary, ProcInfo
from ..rules import AddrLabeler

DIR_STYLE = {
    "OUT": "green",
    "IN": "blue",
    "LISTEN": "magenta",
}

@dataclass
class Choice:
    title: str  # plain text, used for filtering
    value: str  # address key
    index: int
    markup: str = ""

def ellipsis(s: str, length: int) -> str:
    return s[:length] + "..." if len(s) > length else s

def direction_of(conn: ConnSummary) -> str:
    if conn.is_listening:
        return "LISTEN"
    return "OUT" if conn.is_outgoing else "IN"

def executables_for(procs: List[ProcInfo]) -> List[str]:
    return list(dict.fromkeys(x for x in (display_executable(p) for p in procs) if x))

def build_choices(conns: List[ConnSummary], labeler: AddrLabeler,
                  location: Callable[[str], str], procs: AddressProcessMap) -> List[Choice]:
    choices: List[Choice] = []
    for i, conn in enumerate(conns, start=1):
        direction = direction_of(conn)
        name = labeler.label(conn.address)
        loc = location(conn.address)
        loc_str = f" [{loc}]" if loc else ""
        exes = executables_for(procs.get(conn.address, []))
        exe_str = ellipsis(f" ({len(exes)} = {' | '.join(exes)})", 100) if exes else ""
        head = f"{i}. "
        title = f"{head}{direction:<6} {name:<30} {conn.address}{loc_str}{exe_str}"
        markup = (
            f"{head}[{DIR_STYLE[direction]}]{direction:<6}[/] {escape(f'{name:<30}')} "
            f"{escape(conn.address + loc_str)}{escape(exe_str)}"
        )
        choices.append(Choice(title=title, value=conn.address, index=i, markup=markup))
    return choices

def filter_choices(choices: List[Choice], text: str) -> List[Choice]:
    needle = text.strip().lower()
    if not needle:
        return list(choices)
    return [c for c in choices if needle in c.title.lower() or c.value == text.strip()]

def resolve_selection(choices: List[Choice], text: str) -> Optional[Choice]:
    """A list number, an exact address, or a filter with exactly one hit."""
    t = text.strip()
    if not t:
        return None
    if t.isdigit():
        for c in choices:
            if c.index == int(t):
                return c
    for c in choices:
        if c.value == t:
            return c
    hits = filter_choices(choices, t)
    return hits[0] if len(hits) == 1 else None

def print_processes(console: Console, procs: List[ProcInfo]) -> None:
    if not procs:
        console.print("[dim]no process information for this address[/]")
    for p in procs:
        args = " ".join(p.args) if p.args else p.name
        console.print(f"\n[magenta]{p.pid}[/] {escape(args)}")

class Investigator:
    """Listing <-> Detail loop. Ctrl+C or EOF in either state exits cleanly."""

    def __init__(self, choices: List[Choice], procs: AddressProcessMap,
                 console: Optional[Console] = None, limit: int = LISTING_LIMIT,
                 ask: Callable[..., str] = Prompt.ask):
        self.choices = choices
        self.procs = procs
        self.console = console or Console(highlight=False)
        self.limit = limit
        self.ask = ask

    def _exit(self):
        self.console.print("\nExiting...")
        sys.exit(0)

    def _prompt(self, message: str) -> str:
        try:
            return self.ask(message, console=self.console, default="", show_default=False)
        except (KeyboardInterrupt, EOFError):
            self._exit()

    def render(self, shown: List[Choice]) -> None:
        self.console.print()
        for c in shown[:self.limit]:
            self.console.print(Text.from_markup(c.markup), overflow="ellipsis", no_wrap=True)
        if len(shown) > self.limit:
            self.console.print(f"[dim]... {len(shown) - self.limit} more, type to filter[/]")

    def select(self) -> Choice:
        text = ""
        while True:
            shown = filter_choices(self.choices, text)
            self.render(shown)
            answer = self._prompt("Type to filter, enter a number to select")
            picked = resolve_selection(shown, answer)
            if picked:
                return picked
            text = answer

    def detail(self, choice: Choice) -> None:
        self.console.print()
        print_processes(self.console, self.procs.get(choice.value, []))
        self.console.print()
        self._prompt("Press enter to continue")

    def run(self) -> None:
        while True:
            self.detail(self.select())
