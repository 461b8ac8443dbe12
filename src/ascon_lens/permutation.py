"""
Ascon permutation p = pL ∘ pS ∘ pC over the five-word state.

- pC, constant addition: the round constant is XORed into S2.
- pS, substitution: the 5-bit S-box is applied vertically to each of the
  64 bit columns (bit j of S0..S4, S0 as the most significant bit).
- pL, linear diffusion: each word is XORed with two rotations of itself.
"""
from typing import List, Sequence

from ascon_lens.state import AsconState, MASK64
from ascon_lens.state_snapshot import Phase, Substep
from ascon_lens.trace import current_tracer

MAX_ROUNDS = 12

# Constant-addition layer pC, one constant per round of p12.
ROUND_CONSTANTS = (
    0xF0, 0xE1, 0xD2, 0xC3, 0xB4, 0xA5,
    0x96, 0x87, 0x78, 0x69, 0x5A, 0x4B,
)

# Substitution layer pS, indexed by the column value x0x1x2x3x4 (x0 = MSB).
SBOX = (
    0x04, 0x0B, 0x1F, 0x14, 0x1A, 0x15, 0x09, 0x02,
    0x1B, 0x05, 0x08, 0x12, 0x1D, 0x03, 0x06, 0x1C,
    0x1E, 0x13, 0x07, 0x0E, 0x00, 0x0D, 0x11, 0x18,
    0x10, 0x0C, 0x01, 0x19, 0x16, 0x0A, 0x0F, 0x17,
)

# Linear diffusion layer pL, right-rotation pair per word.
ROTATIONS = (
    (19, 28),
    (61, 39),
    (1, 6),
    (10, 17),
    (7, 41),
)


def rotr(val: int, r: int) -> int:
    r %= 64
    return ((val >> r) | (val << (64 - r))) & MASK64


def round_constants(rounds: int) -> Sequence[int]:
    """Constants for a rounds-round permutation, taken from the tail so the last round is always 0x4b."""
    if not 1 <= rounds <= MAX_ROUNDS:
        raise ValueError(f"Round count must be between 1 and {MAX_ROUNDS}, got {rounds}")
    return ROUND_CONSTANTS[MAX_ROUNDS - rounds:]


def add_constant(state: AsconState, constant: int) -> None:
    state[2] ^= constant


def substitution_layer(state: AsconState) -> None:
    """Bit-sliced S-box: all 64 columns at once. Equivalent to sbox_by_column()."""
    x0, x1, x2, x3, x4 = state.words

    x0 ^= x4
    x4 ^= x3
    x2 ^= x1

    t0 = ~x0 & x1
    t1 = ~x1 & x2
    t2 = ~x2 & x3
    t3 = ~x3 & x4
    t4 = ~x4 & x0

    x0 ^= t1
    x1 ^= t2
    x2 ^= t3
    x3 ^= t4
    x4 ^= t0

    x1 ^= x0
    x0 ^= x4
    x3 ^= x2
    x2 = ~x2

    for i, x in enumerate((x0, x1, x2, x3, x4)):
        state[i] = x & MASK64


def sbox_by_column(state: AsconState) -> None:
    """Table-driven S-box, one 5-bit column at a time."""
    words: List[int] = list(state.words)
    out = [0, 0, 0, 0, 0]
    for k in range(64):  # for each column (bit position)
        column = 0
        for j in range(5):
            column = (column << 1) | ((words[j] >> k) & 1)

        substituted = SBOX[column]

        for j in range(5):
            out[j] |= ((substituted >> (4 - j)) & 1) << k

    for i in range(5):
        state[i] = out[i]


def linear_diffusion_layer(state: AsconState) -> None:
    for i, (r1, r2) in enumerate(ROTATIONS):
        x = state[i]
        state[i] = x ^ rotr(x, r1) ^ rotr(x, r2)


def permutation_round(state: AsconState, constant: int) -> None:
    add_constant(state, constant)
    substitution_layer(state)
    linear_diffusion_layer(state)


def permute(state: AsconState, rounds: int, *, phase: Phase = Phase.INIT) -> AsconState:
    """
    Apply the Ascon permutation to the state in place.
    Args:
        state : The state to permute.
        rounds: Number of rounds, 1 to 12. Constants are taken from the tail
                of ROUND_CONSTANTS so p6 matches the last six rounds of p12.
        phase : Phase label for trace snapshots. Ignored when not tracing.
    Returns:
        State: The same state object, for chaining.
    """
    constants = round_constants(rounds)
    tracer = current_tracer()

    if tracer is None:
        for constant in constants:
            permutation_round(state, constant)
        return state

    for round_index, constant in enumerate(constants):
        add_constant(state, constant)
        tracer.record(state, phase, Substep.ADD_CONSTANT, round_index=round_index)
        substitution_layer(state)
        tracer.record(state, phase, Substep.SUBSTITUTION, round_index=round_index)
        linear_diffusion_layer(state)
        tracer.record(state, phase, Substep.LINEAR_DIFFUSION, round_index=round_index)

    return state
