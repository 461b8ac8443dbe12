"""
The Ascon state: five 64-bit words, S0 || S1 || S2 || S3 || S4 = 320 bits.

S0    MSB -> [][][][][][][][][][][][][][][][][][][]....[][][][][][][] <- LSB   rate (Ascon-128)
S1    MSB -> [][][][][][][][][][][][][][][][][][][]....[][][][][][][] <- LSB   rate (Ascon-128a) / capacity
S2    MSB -> [][][][][][][][][][][][][][][][][][][]....[][][][][][][] <- LSB   capacity
S3    MSB -> [][][][][][][][][][][][][][][][][][][]....[][][][][][][] <- LSB   capacity
S4    MSB -> [][][][][][][][][][][][][][][][][][][]....[][][][][][][] <- LSB   capacity

Bytes are loaded into words big-endian: byte 0 of a block is the most
significant byte of S0.
"""
from __future__ import annotations

from typing import Iterable, Tuple

from ascon_lens.codec import WORD_SIZE, bytes_to_word, word_to_bytes, BytesLike
from ascon_lens.state_snapshot import Phase, StateSnapshot, Substep
from ascon_lens.variants import STATE_WORDS

MASK64 = (1 << 64) - 1


class AsconState:

    __slots__ = ("_words",)

    def __init__(self, words: Iterable[int] = (0, 0, 0, 0, 0)):
        words = list(words)
        if len(words) != STATE_WORDS:
            raise ValueError(f"State must have exactly {STATE_WORDS} words, got {len(words)}")
        for idx, w in enumerate(words):
            if not 0 <= w <= MASK64:
                raise ValueError(f"words[{idx}] is not a 64-bit unsigned value")
        self._words = words

    @classmethod
    def zero(cls) -> AsconState:
        return cls()

    @classmethod
    def from_bytes(cls, data: BytesLike) -> AsconState:
        if len(data) != STATE_WORDS * WORD_SIZE:
            raise ValueError(f"State bytes must be {STATE_WORDS * WORD_SIZE} long, got {len(data)}")
        return cls(bytes_to_word(data[i:i + WORD_SIZE]) for i in range(0, len(data), WORD_SIZE))

    @property
    def words(self) -> Tuple[int, int, int, int, int]:
        return tuple(self._words)

    def __getitem__(self, index: int) -> int:
        return self._words[index]

    def __setitem__(self, index: int, value: int) -> None:
        self._words[index] = value & MASK64

    def __len__(self) -> int:
        return STATE_WORDS

    def __iter__(self):
        return iter(tuple(self._words))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AsconState):
            return NotImplemented
        return self._words == other._words

    def __repr__(self) -> str:
        return f"AsconState({' '.join(self.hex_words())})"

    def copy(self) -> AsconState:
        return AsconState(self._words)

    def to_bytes(self) -> bytes:
        return b"".join(word_to_bytes(w) for w in self._words)

    def hex_words(self) -> Tuple[str, ...]:
        return tuple(f"{w:016x}" for w in self._words)

    # ---- Rate access: the only bytes ever mixed with the data stream ----
    def rate_bytes(self, rate: int) -> bytes:
        return b"".join(word_to_bytes(self._words[w]) for w in range(rate // WORD_SIZE))

    def xor_rate(self, block: BytesLike) -> None:
        """XOR a full rate block into the leading words."""
        if len(block) % WORD_SIZE != 0:
            raise ValueError(f"Rate block must be a multiple of {WORD_SIZE} bytes, got {len(block)}")
        for w in range(len(block) // WORD_SIZE):
            self._words[w] ^= bytes_to_word(block[w * WORD_SIZE:(w + 1) * WORD_SIZE])

    def set_rate(self, block: BytesLike) -> None:
        """Overwrite the leading words with a full rate block."""
        if len(block) % WORD_SIZE != 0:
            raise ValueError(f"Rate block must be a multiple of {WORD_SIZE} bytes, got {len(block)}")
        for w in range(len(block) // WORD_SIZE):
            self._words[w] = bytes_to_word(block[w * WORD_SIZE:(w + 1) * WORD_SIZE])

    # ---- Snapshot handoff to tracers ----
    def snapshot(
        self,
        state_version: int,
        phase: Phase,
        substep: Substep,
        **metadata,
    ) -> StateSnapshot:
        return StateSnapshot(
            state_version=state_version,
            phase=phase,
            substep=substep,
            words=tuple(self._words),
            **metadata,
        )
