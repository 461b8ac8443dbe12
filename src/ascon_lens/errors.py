from enum import Enum


class ErrorKind(str, Enum):
    INVALID_KEY_LENGTH = "invalid_key_length"
    INVALID_NONCE_LENGTH = "invalid_nonce_length"
    INVALID_ENCODING = "invalid_encoding"
    INVALID_VARIANT = "invalid_variant"
    TAG_INVALID = "tag_invalid"
    PROTOCOL = "protocol"

    def __str__(self):
        return self.value


class AsconError(Exception):
    """Base class for every error the cipher core raises."""

    kind: ErrorKind


class InvalidInput(AsconError, ValueError):
    """Input that cannot be used at all, as opposed to input that fails authentication."""


class InvalidKeyLength(InvalidInput):
    kind = ErrorKind.INVALID_KEY_LENGTH

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Key must be exactly {expected} bytes, got {actual}")
        self.expected = expected
        self.actual = actual


class InvalidNonceLength(InvalidInput):
    kind = ErrorKind.INVALID_NONCE_LENGTH

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Nonce must be exactly {expected} bytes, got {actual}")
        self.expected = expected
        self.actual = actual


class InvalidEncoding(InvalidInput):
    kind = ErrorKind.INVALID_ENCODING


class InvalidVariant(InvalidInput):
    kind = ErrorKind.INVALID_VARIANT


class TagInvalid(AsconError):
    """Well-formed ciphertext whose tag does not authenticate. No plaintext is released."""

    kind = ErrorKind.TAG_INVALID

    def __init__(self, message: str = "Authentication tag does not match"):
        super().__init__(message)


class ProtocolError(AsconError, RuntimeError):
    """An AEAD run was driven out of order."""

    kind = ErrorKind.PROTOCOL
