"""
Ascon authenticated encryption.

Sizes of each param (Ascon-128):

- Key K: 128 bits
- Nonce N: 128 bits
- Initialization value IV: 64 bits (0x80400c0600000000)
- State: 320 bits (5 words of 64 bits each)
- Rate r: 64 bits, capacity c: 256 bits
- Tag T: 128 bits
- Associated data A, plaintext P, ciphertext C: variable length

A run moves through the stages

    UNINITIALIZED -> INITIALIZED -> ABSORBING_ASSOCIATED_DATA
        -> PROCESSING_DATA -> FINALIZED -> TAG_VALID | TAG_INVALID

and every run object is single use. Decrypted plaintext is withheld inside the
run until the tag has been verified; release_plaintext() and decrypt() return
it only after a valid tag. This covers returned values only. A trace of the run (see
ascon_lens.trace) records the key and the keystream, and must be treated as
being as secret as the key.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cryptography.hazmat.primitives import constant_time

from ascon_lens.codec import BytesLike, bytes_to_word, pad, split_blocks, word_to_bytes, xor_bytes, PAD_BYTE
from ascon_lens.errors import (
    InvalidEncoding,
    InvalidKeyLength,
    InvalidNonceLength,
    ProtocolError,
    TagInvalid,
)
from ascon_lens.logs import get_logger
from ascon_lens.permutation import permute
from ascon_lens.state import AsconState
from ascon_lens.state_snapshot import Phase, Substep
from ascon_lens.trace import emit
from ascon_lens.variants import AsconVariant, DEFAULT_VARIANT

log = get_logger()


class Stage(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ABSORBING_ASSOCIATED_DATA = "absorbing_associated_data"
    PROCESSING_DATA = "processing_data"
    FINALIZED = "finalized"
    TAG_VALID = "tag_valid"
    TAG_INVALID = "tag_invalid"

    def __str__(self):
        return self.value


class TagCheck(str, Enum):
    VALID = "tag_valid"
    INVALID = "tag_invalid"

    def __str__(self):
        return self.value


@dataclass(frozen=True, slots=True)
class EncryptResult:
    ciphertext: bytes
    tag: bytes

    @property
    def combined(self) -> bytes:
        """Ciphertext followed by the tag, the layout of the published test vectors."""
        return self.ciphertext + self.tag


@dataclass(frozen=True, slots=True)
class DecryptResult:
    plaintext: bytes


def verify_tag(candidate: BytesLike, computed: BytesLike) -> TagCheck:
    """Constant-time tag comparison. Never exits early on the first differing byte."""
    if constant_time.bytes_eq(bytes(candidate), bytes(computed)):
        return TagCheck.VALID
    return TagCheck.INVALID


class AsconAead:
    """One encryption or decryption run over a private state."""

    def __init__(self, variant: AsconVariant = DEFAULT_VARIANT):
        self.variant = variant
        self.state = AsconState.zero()
        self.stage = Stage.UNINITIALIZED
        self._key_words: tuple[int, int] = (0, 0)
        self._tag: Optional[bytes] = None
        self._withheld: Optional[bytes] = None

    def _expect(self, action: str, *stages: Stage) -> None:
        if self.stage not in stages:
            raise ProtocolError(f"Cannot {action} in stage {self.stage}")

    def initialize(self, key: BytesLike, nonce: BytesLike) -> None:
        """S <- IV || K || N, S <- p^a(S), S <- S xor (0* || K)."""
        self._expect("initialize", Stage.UNINITIALIZED)
        v = self.variant
        if len(key) != v.key_size:
            raise InvalidKeyLength(v.key_size, len(key))
        if len(nonce) != v.nonce_size:
            raise InvalidNonceLength(v.nonce_size, len(nonce))

        key, nonce = bytes(key), bytes(nonce)
        k0, k1 = bytes_to_word(key[0:8]), bytes_to_word(key[8:16])
        self._key_words = (k0, k1)

        self.state = AsconState([v.iv, k0, k1, bytes_to_word(nonce[0:8]), bytes_to_word(nonce[8:16])])
        emit(self.state, Phase.INIT, Substep.LOAD_STATE)

        permute(self.state, v.rounds_a, phase=Phase.INIT)

        # S <- S xor (0^192 || K)
        self.state[3] ^= k0
        self.state[4] ^= k1
        emit(self.state, Phase.INIT, Substep.KEY_MIX)

        self.stage = Stage.INITIALIZED
        log.debug("initialized", variant=v.name)

    def absorb_associated_data(self, data: BytesLike = b"") -> None:
        """Absorb padded associated data, then flip the domain separation bit (always)."""
        self._expect("absorb associated data", Stage.INITIALIZED)
        self.stage = Stage.ABSORBING_ASSOCIATED_DATA
        v = self.variant

        if len(data) > 0:
            for block_index, block in enumerate(split_blocks(pad(data, v.rate), v.rate)):
                self.state.xor_rate(block)
                emit(
                    self.state, Phase.ABSORB_AD, Substep.ABSORB_BLOCK,
                    block_index=block_index,
                    input_fragment=data[block_index * v.rate:(block_index + 1) * v.rate],
                )
                permute(self.state, v.rounds_b, phase=Phase.ABSORB_AD)

        # S <- S xor (0^319 || 1)
        self.state[4] ^= 1
        emit(self.state, Phase.ABSORB_AD, Substep.DOMAIN_SEPARATION)
        log.debug("associated data absorbed", ad_len=len(data))

    def encrypt_data(self, plaintext: BytesLike) -> bytes:
        """Encrypt the whole plaintext. No permutation follows the last block."""
        self._expect("encrypt", Stage.ABSORBING_ASSOCIATED_DATA)
        self.stage = Stage.PROCESSING_DATA
        v = self.variant
        plaintext = bytes(plaintext)

        blocks = list(split_blocks(pad(plaintext, v.rate), v.rate))
        last = len(blocks) - 1
        ciphertext = bytearray()

        for block_index, block in enumerate(blocks):
            self.state.xor_rate(block)
            chunk = self.state.rate_bytes(v.rate)
            if block_index == last:
                # Emit only the true message bytes of the padded final block.
                chunk = chunk[:len(plaintext) - last * v.rate]
            ciphertext += chunk
            emit(
                self.state, Phase.PROCESS, Substep.ENCRYPT_BLOCK,
                block_index=block_index,
                input_fragment=plaintext[block_index * v.rate:(block_index + 1) * v.rate],
                output_fragment=chunk,
            )
            if block_index != last:
                permute(self.state, v.rounds_b, phase=Phase.PROCESS)

        log.debug("plaintext processed", pt_len=len(plaintext), blocks=len(blocks))
        return bytes(ciphertext)

    def decrypt_data(self, ciphertext: BytesLike) -> None:
        """Decrypt the whole ciphertext into a withheld buffer. See release_plaintext().

        Snapshots carry only the ciphertext block as a fragment, but their state
        words hold the keystream, so a trace of this step exposes the plaintext.
        """
        self._expect("decrypt", Stage.ABSORBING_ASSOCIATED_DATA)
        self.stage = Stage.PROCESSING_DATA
        v = self.variant
        ciphertext = bytes(ciphertext)

        full_blocks = len(ciphertext) // v.rate
        plaintext = bytearray()

        for block_index in range(full_blocks):
            c = ciphertext[block_index * v.rate:(block_index + 1) * v.rate]
            plaintext += xor_bytes(self.state.rate_bytes(v.rate), c)
            self.state.set_rate(c)
            emit(self.state, Phase.PROCESS, Substep.DECRYPT_BLOCK, block_index=block_index, input_fragment=c)
            permute(self.state, v.rounds_b, phase=Phase.PROCESS)

        # Last block, possibly empty: the rate becomes C || rate[n:] with the padding bit applied.
        c = ciphertext[full_blocks * v.rate:]
        rate = self.state.rate_bytes(v.rate)
        plaintext += xor_bytes(rate[:len(c)], c)
        last_rate = bytearray(c + rate[len(c):])
        last_rate[len(c)] ^= PAD_BYTE
        self.state.set_rate(last_rate)
        emit(self.state, Phase.PROCESS, Substep.DECRYPT_BLOCK, block_index=full_blocks, input_fragment=c)

        self._withheld = bytes(plaintext)
        log.debug("ciphertext processed", ct_len=len(ciphertext), blocks=full_blocks + 1)

    def finalize(self) -> bytes:
        """S <- p^a(S xor (0^r || K || 0*)), T <- S[last 128 bits] xor K."""
        self._expect("finalize", Stage.PROCESSING_DATA)
        v = self.variant
        k0, k1 = self._key_words

        self.state[v.rate_words] ^= k0
        self.state[v.rate_words + 1] ^= k1
        emit(self.state, Phase.FINALIZE, Substep.KEY_MIX)

        permute(self.state, v.rounds_a, phase=Phase.FINALIZE)

        self.state[3] ^= k0
        self.state[4] ^= k1
        tag = word_to_bytes(self.state[3]) + word_to_bytes(self.state[4])
        emit(self.state, Phase.FINALIZE, Substep.TAG_EXTRACT, output_fragment=tag)

        self._tag = tag
        self.stage = Stage.FINALIZED
        return tag

    def verify_tag(self, candidate: BytesLike) -> TagCheck:
        self._expect("verify tag", Stage.FINALIZED)
        check = verify_tag(candidate, self._tag)

        if check is TagCheck.VALID:
            self.stage = Stage.TAG_VALID
            released = self._withheld or b""
        else:
            self.stage = Stage.TAG_INVALID
            self._withheld = None
            released = b""
            log.warning("tag verification failed", variant=self.variant.name)

        emit(
            self.state, Phase.VERIFY_TAG, Substep.TAG_COMPARE,
            input_fragment=bytes(candidate),
            output_fragment=released,
        )
        return check

    def release_plaintext(self) -> bytes:
        """Return decrypted plaintext, only after a successful tag check."""
        if self.stage is Stage.TAG_INVALID:
            raise TagInvalid()
        if self.stage is not Stage.TAG_VALID or self._withheld is None:
            raise ProtocolError(f"No verified plaintext to release in stage {self.stage}")
        return self._withheld


def encrypt(
    plaintext: BytesLike,
    key: BytesLike,
    nonce: BytesLike,
    associated_data: BytesLike = b"",
    variant: AsconVariant = DEFAULT_VARIANT,
) -> EncryptResult:
    """Encrypt and authenticate plaintext, authenticating associated_data alongside it.

    The nonce must never repeat for the same key; this is not checked.
    """
    run = AsconAead(variant)
    run.initialize(key, nonce)
    run.absorb_associated_data(associated_data)
    ciphertext = run.encrypt_data(plaintext)
    tag = run.finalize()
    return EncryptResult(ciphertext=ciphertext, tag=tag)


def decrypt(
    ciphertext: BytesLike,
    tag: BytesLike,
    key: BytesLike,
    nonce: BytesLike,
    associated_data: BytesLike = b"",
    variant: AsconVariant = DEFAULT_VARIANT,
) -> DecryptResult:
    """Verify and decrypt. Raises TagInvalid, with no plaintext, if authentication fails.

    When traced, the trace holds the key and keystream whatever the outcome.
    """
    run = AsconAead(variant)
    run.initialize(key, nonce)
    if len(tag) != variant.tag_size:
        raise InvalidEncoding(f"Tag must be exactly {variant.tag_size} bytes, got {len(tag)}")

    run.absorb_associated_data(associated_data)
    run.decrypt_data(ciphertext)
    run.finalize()
    if run.verify_tag(tag) is TagCheck.INVALID:
        raise TagInvalid()
    return DecryptResult(plaintext=run.release_plaintext())
