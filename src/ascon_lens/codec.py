import base64
import binascii
import re
from typing import Iterator, Literal, Union

from ascon_lens.errors import InvalidEncoding

BytesLike = Union[bytes, bytearray, memoryview]

type InputFormat = Literal["text", "hex", "b64"]

WORD_SIZE = 8
PAD_BYTE = 0x80

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def text_to_bytes(text: str) -> bytes:
    """UTF-8 encode. Code points UTF-8 cannot carry (lone surrogates) become '?'."""
    return text.encode("utf-8", errors="replace")


def bytes_to_text(data: BytesLike) -> str:
    """UTF-8 decode, substituting U+FFFD for invalid sequences instead of raising."""
    return bytes(data).decode("utf-8", errors="replace")


def bytes_to_hex(data: BytesLike) -> str:
    return bytes(data).hex()


def hex_to_bytes(text: str) -> bytes:
    """Strict hex decode. Odd lengths and stray characters are rejected, never skipped."""
    if len(text) % 2 != 0:
        raise InvalidEncoding(f"Hex string has odd length ({len(text)})")
    if not _HEX_RE.fullmatch(text):
        raise InvalidEncoding("Hex string contains non-hex characters")
    return bytes.fromhex(text)


def b64_encode(data: BytesLike, *, urlsafe: bool = False) -> str:
    fn = base64.urlsafe_b64encode if urlsafe else base64.b64encode
    return fn(bytes(data)).decode("ascii")


def b64_decode(b64_text: str) -> bytes:
    """Decodes either standard or URL-safe b64. Tolerates missing '=' padding."""
    missing = len(b64_text) % 4
    if missing:
        b64_text += "=" * (4 - missing)

    if "-" in b64_text or "_" in b64_text:
        b64_text = b64_text.replace("-", "+").replace("_", "/")

    try:
        return base64.b64decode(b64_text, validate=True)
    except binascii.Error as e:
        raise InvalidEncoding(f"Invalid base64: {e}") from e


def decode_input(value: str, fmt: InputFormat) -> bytes:
    """Turn a user supplied string into bytes according to its declared format."""
    if fmt == "text":
        return text_to_bytes(value)
    elif fmt == "hex":
        return hex_to_bytes(value)
    elif fmt == "b64":
        return b64_decode(value)
    else:
        raise ValueError(f"Invalid input format: {fmt}")


def pad(data: BytesLike, rate: int) -> bytes:
    """Append 0x80 then zeros up to the next multiple of rate. Always adds at least one byte."""
    zeros = rate - (len(data) % rate) - 1
    return bytes(data) + bytes([PAD_BYTE]) + bytes(zeros)


def split_blocks(data: BytesLike, size: int) -> Iterator[bytes]:
    data = bytes(data)
    for i in range(0, len(data), size):
        yield data[i:i + size]


def bytes_to_word(block: BytesLike) -> int:
    """Big-endian 64-bit word from up to 8 bytes, zero-filled on the right."""
    if len(block) > WORD_SIZE:
        raise ValueError(f"Word block must be at most {WORD_SIZE} bytes, got {len(block)}")
    return int.from_bytes(bytes(block).ljust(WORD_SIZE, b"\x00"), "big")


def word_to_bytes(word: int) -> bytes:
    return word.to_bytes(WORD_SIZE, "big")


def xor_bytes(a: BytesLike, b: BytesLike) -> bytes:
    if len(a) != len(b):
        raise ValueError(f"Length mismatch: {len(a)} != {len(b)}")
    return bytes(x ^ y for x, y in zip(a, b))
