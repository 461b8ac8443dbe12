import time
from typing import Literal, Optional, Sequence

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from ascon_lens.state_snapshot import Phase, StateSnapshot
from ascon_lens.variants import AsconVariant, DEFAULT_VARIANT

COLORS = {
    "rate": {
        "changed": "bold bright_yellow",
        "unchanged": "yellow",
    },
    "capacity": {
        "changed": "bold turquoise2",
        "unchanged": "cyan",
    },
    "phase": {
        Phase.INIT: "magenta",
        Phase.ABSORB_AD: "blue",
        Phase.PROCESS: "green",
        Phase.FINALIZE: "red",
        Phase.VERIFY_TAG: "bold white",
    },
}

type WordRegion = Literal["rate", "capacity"]


def word_to_string(word: int, region: WordRegion, changed: bool) -> str:
    """Hex with a space every 4 digits, colored by region."""
    hex_word = f"{word:016x}"
    grouped = " ".join(hex_word[i:i + 4] for i in range(0, 16, 4))
    style = COLORS[region]["changed" if changed else "unchanged"]
    return f"[{style}]{grouped}[/{style}]"


def snapshot_title(state: StateSnapshot, total: Optional[int] = None) -> str:
    style = COLORS["phase"][state.phase]
    parts = [f"[{style}]{state.phase.value}[/{style}]", state.substep.value]
    if state.round_index is not None:
        parts.append(f"round {state.round_index}")
    if state.block_index is not None:
        parts.append(f"block {state.block_index}")
    step = f"{state.state_version}/{total}" if total else f"v{state.state_version}"
    parts.append(step)
    return "  |  ".join(parts)


def render(
    state: Optional[StateSnapshot],
    previous: Optional[StateSnapshot] = None,
    variant: AsconVariant = DEFAULT_VARIANT,
    total: Optional[int] = None,
):
    """Render one snapshot of the five state words."""
    if state is None:
        return Panel("Waiting for first snapshot…", title="Ascon", border_style="dim")

    ui_table = Table(title=snapshot_title(state, total))
    ui_table.add_column("Word", justify="right")
    ui_table.add_column("Region")
    ui_table.add_column("Value")

    for idx, word in enumerate(state.words):
        region: WordRegion = "rate" if idx < variant.rate_words else "capacity"
        changed = previous is not None and previous.words[idx] != word
        ui_table.add_row(f"S{idx}", region, word_to_string(word, region, changed))

    if state.input_fragment or state.output_fragment:
        ui_table.caption = f"in: {state.input_fragment.hex() or '-'}   out: {state.output_fragment.hex() or '-'}"

    return ui_table


def trace_table(trace: Sequence[StateSnapshot], variant: AsconVariant = DEFAULT_VARIANT) -> Table:
    """One row per snapshot, for non-interactive output."""
    t = Table(show_header=True, show_lines=False, show_edge=False, padding=(0, 1))
    t.add_column("#", justify="right", style="dim")
    t.add_column("Phase")
    t.add_column("Substep")
    t.add_column("Rnd", justify="right")
    t.add_column("Blk", justify="right")
    for idx in range(5):
        t.add_column(f"S{idx}", style="yellow" if idx < variant.rate_words else "cyan", no_wrap=True)

    for state in trace:
        style = COLORS["phase"][state.phase]
        t.add_row(
            str(state.state_version),
            f"[{style}]{state.phase.value}[/{style}]",
            state.substep.value,
            "" if state.round_index is None else str(state.round_index),
            "" if state.block_index is None else str(state.block_index),
            *state.hex_words(),
        )
    return t


def ui_loop(
    trace: Sequence[StateSnapshot],
    delay: float = 0.05,
    variant: AsconVariant = DEFAULT_VARIANT,
    console: Optional[Console] = None,
) -> None:
    """Replay a finished trace, one snapshot per frame."""
    previous = None
    with Live(render(None), refresh_per_second=30, screen=False, console=console) as live:
        for state in trace:
            live.update(render(state, previous, variant, total=len(trace)))
            previous = state
            if delay > 0:
                time.sleep(delay)
