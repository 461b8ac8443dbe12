from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ascon_lens.aead import encrypt
from ascon_lens.state_snapshot import Phase, StateSnapshot, Substep
from ascon_lens.trace import with_trace
from ascon_lens.ui import COLORS, render, snapshot_title, trace_table, ui_loop, word_to_string
from ascon_lens.variants import ASCON_128A


def make_snapshot(**kwargs) -> StateSnapshot:
    values = dict(
        state_version=3,
        phase=Phase.PROCESS,
        substep=Substep.ENCRYPT_BLOCK,
        words=(1, 2, 3, 4, 5),
    )
    values.update(kwargs)
    return StateSnapshot(**values)


class TestRendering:
    """Test suite for the rich renderers"""

    def test_word_to_string(self):
        """Test words are grouped by four hex digits and colored by region"""
        result = word_to_string(0x0123456789ABCDEF, "rate", changed=True)
        assert "0123 4567 89ab cdef" in result
        assert COLORS["rate"]["changed"] in result

    def test_snapshot_title(self):
        """Test the title lists phase, substep, indices and position"""
        title = snapshot_title(make_snapshot(block_index=1), total=10)
        assert "process" in title
        assert "encrypt_block" in title
        assert "block 1" in title
        assert "3/10" in title

    def test_render_waiting(self):
        """Test a placeholder is shown before the first snapshot"""
        assert isinstance(render(None), Panel)

    def test_render_marks_regions(self):
        """Test the rate words follow the variant"""
        table = render(make_snapshot(), variant=ASCON_128A)
        assert isinstance(table, Table)
        assert table.row_count == 5
        regions = list(table.columns[1].cells)
        assert regions == ["rate", "rate", "capacity", "capacity", "capacity"]

    def test_render_caption_shows_fragments(self):
        """Test data fragments are shown as hex"""
        table = render(make_snapshot(input_fragment=b"\x01", output_fragment=b"\xff"))
        assert "in: 01" in table.caption
        assert "out: ff" in table.caption

    def test_trace_table(self):
        """Test one row per snapshot"""
        trace = with_trace(encrypt, b"ascon", bytes(16), bytes(16)).trace
        assert trace_table(trace).row_count == len(trace)

    def test_ui_loop_replays(self):
        """Test a replay runs to completion without delay"""
        console = Console(record=True, width=120)
        trace = with_trace(encrypt, b"", bytes(16), bytes(16)).trace
        ui_loop(trace[-3:], delay=0, console=console)
        assert "tag_extract" in console.export_text()
