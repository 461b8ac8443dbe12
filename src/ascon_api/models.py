from typing import List, Literal, Optional

from pydantic import BaseModel

from ascon_lens.state_snapshot import Phase, StateSnapshot, Substep


class CipherParams(BaseModel):
    key_hex: str
    nonce_hex: str
    associated_data_hex: str = ""
    variant: str = "Ascon-128"


class EncryptRequest(CipherParams):
    plaintext: Optional[str] = None
    plaintext_hex: Optional[str] = None


class EncryptResponse(BaseModel):
    alg: str
    ciphertext_hex: str
    ciphertext_b64: str
    tag_hex: str


class DecryptRequest(CipherParams):
    ciphertext_hex: str
    tag_hex: str


class DecryptResponse(BaseModel):
    alg: str
    plaintext_hex: str
    plaintext_text: str


class TraceRequest(CipherParams):
    mode: Literal["encrypt", "decrypt"] = "encrypt"
    plaintext: Optional[str] = None
    plaintext_hex: Optional[str] = None
    ciphertext_hex: Optional[str] = None
    tag_hex: Optional[str] = None


class SnapshotModel(BaseModel):
    state_version: int
    phase: Phase
    substep: Substep
    words: List[str]
    round_index: Optional[int] = None
    block_index: Optional[int] = None
    input_hex: str = ""
    output_hex: str = ""

    @classmethod
    def from_snapshot(cls, snapshot: StateSnapshot) -> "SnapshotModel":
        return cls(
            state_version=snapshot.state_version,
            phase=snapshot.phase,
            substep=snapshot.substep,
            words=list(snapshot.hex_words()),
            round_index=snapshot.round_index,
            block_index=snapshot.block_index,
            input_hex=snapshot.input_fragment.hex(),
            output_hex=snapshot.output_fragment.hex(),
        )


class ErrorDetail(BaseModel):
    kind: str
    message: str


class TraceResponse(BaseModel):
    alg: str
    mode: Literal["encrypt", "decrypt"]
    ciphertext_hex: Optional[str] = None
    tag_hex: Optional[str] = None
    plaintext_hex: Optional[str] = None
    tag_valid: Optional[bool] = None
    error: Optional[ErrorDetail] = None
    snapshots: List[SnapshotModel]


class VariantModel(BaseModel):
    name: str
    key_size: int
    nonce_size: int
    tag_size: int
    rate: int
    rounds_a: int
    rounds_b: int
    iv_hex: str


class ParametersResponse(BaseModel):
    round_constants: List[int]
    sbox: List[int]
    rotations: List[List[int]]
    variants: List[VariantModel]
