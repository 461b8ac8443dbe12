from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Phase(str, Enum):
    INIT = "init"
    ABSORB_AD = "absorb_ad"
    PROCESS = "process"
    FINALIZE = "finalize"
    VERIFY_TAG = "verify_tag"

    def __str__(self):
        return self.value


class Substep(str, Enum):
    LOAD_STATE = "load_state"
    ADD_CONSTANT = "add_constant"
    SUBSTITUTION = "substitution"
    LINEAR_DIFFUSION = "linear_diffusion"
    KEY_MIX = "key_mix"
    ABSORB_BLOCK = "absorb_block"
    DOMAIN_SEPARATION = "domain_separation"
    ENCRYPT_BLOCK = "encrypt_block"
    DECRYPT_BLOCK = "decrypt_block"
    TAG_EXTRACT = "tag_extract"
    TAG_COMPARE = "tag_compare"

    def __str__(self):
        return self.value


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """Immutable copy of the five state words at one observation point."""

    state_version: int
    phase: Phase
    substep: Substep
    words: Tuple[int, int, int, int, int]

    round_index: Optional[int] = None
    block_index: Optional[int] = None
    input_fragment: bytes = b""
    output_fragment: bytes = b""

    def hex_words(self) -> Tuple[str, ...]:
        return tuple(f"{w:016x}" for w in self.words)
