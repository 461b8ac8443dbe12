from dataclasses import dataclass

from ascon_lens.errors import InvalidVariant

STATE_WORDS = 5
STATE_BITS = STATE_WORDS * 64


@dataclass(frozen=True, slots=True)
class AsconVariant:
    """Fixed parameter set of one Ascon AEAD variant. Sizes are in bytes."""

    name: str
    key_size: int = 16
    nonce_size: int = 16
    tag_size: int = 16
    rate: int = 8
    rounds_a: int = 12
    rounds_b: int = 6

    @property
    def iv(self) -> int:
        """Packed initialization value: key bits, rate bits, rounds a, rounds b."""
        return (
            (self.key_size * 8) << 56
            | (self.rate * 8) << 48
            | self.rounds_a << 40
            | self.rounds_b << 32
        )

    @property
    def rate_words(self) -> int:
        return self.rate // 8

    @property
    def capacity_bits(self) -> int:
        return STATE_BITS - self.rate * 8

    def __str__(self):
        return self.name


ASCON_128 = AsconVariant(name="Ascon-128")
ASCON_128A = AsconVariant(name="Ascon-128a", rate=16, rounds_b=8)

VARIANTS = {v.name.lower(): v for v in (ASCON_128, ASCON_128A)}
DEFAULT_VARIANT = ASCON_128


def get_variant(name: str) -> AsconVariant:
    try:
        return VARIANTS[name.lower()]
    except KeyError:
        raise InvalidVariant(f"Invalid variant: {name} (expected one of {', '.join(v.name for v in VARIANTS.values())})") from None
