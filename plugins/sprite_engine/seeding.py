"""
Seeded Random Streams

Deterministic string hashing and a small counter-based PRNG. Every random
draw in the engine comes from a named stream keyed off the state seed plus
a purpose string, so colors, positions, blend modes and sprite choices can
each be rerolled without disturbing the others.

Usage:
    from sprite_engine.seeding import seeded_stream
    rng = seeded_stream("DEADBEEF", "position")
    x = rng()  # float in [0, 1)
"""

_MASK32 = 0xFFFFFFFF

SEED_ALPHABET = "0123456789ABCDEF"
SEED_LENGTH = 8


def _imul(a, b):
    """32-bit wrapping multiply."""
    return (a * b) & _MASK32


def _utf16_units(text):
    raw = text.encode("utf-16-le")
    return [raw[i] | (raw[i + 1] << 8) for i in range(0, len(raw), 2)]


def hash_seed(text):
    """Hash a seed string to an unsigned 32-bit integer.

    Order-sensitive with a murmur-style finalizer, so seeds that differ by
    one character land far apart.

    Args:
        text: Seed string (any length, any characters)

    Returns:
        Integer in [0, 2**32)
    """
    units = _utf16_units(text)
    h = (1779033703 ^ len(units)) & _MASK32
    for code in units:
        h = _imul(h ^ code, 3432918353)
        h = ((h << 13) | (h >> 19)) & _MASK32
    h = _imul(h ^ (h >> 16), 2246822507)
    h ^= h >> 13
    h = _imul(h, 3266489909)
    return (h ^ (h >> 16)) & _MASK32


class Mulberry32:
    """Counter-based PRNG whose whole state is one 32-bit integer.

    Calling the instance returns the next float in [0, 1). Two instances
    built from the same seed produce the same sequence.
    """

    __slots__ = ("_t",)

    def __init__(self, seed):
        self._t = seed & _MASK32

    def __call__(self):
        self._t = (self._t + 0x6D2B79F5) & _MASK32
        t = self._t
        r = _imul(t ^ (t >> 15), 1 | t)
        r ^= (r + _imul(r ^ (r >> 7), 61 | r)) & _MASK32
        return ((r ^ (r >> 14)) & _MASK32) / 4294967296.0


def mulberry32(seed):
    """Float generator over [0, 1) seeded with a 32-bit integer."""
    return Mulberry32(seed)


def stream_key(seed, purpose="", suffix=""):
    """Build the hash key for a named stream.

    The base stream is the bare seed; every other purpose is appended as
    "{seed}-{purpose}{suffix}".
    """
    if not purpose:
        return f"{seed}{suffix}"
    return f"{seed}-{purpose}{suffix}"


def seeded_stream(seed, purpose="", suffix=""):
    """PRNG for one (seed, purpose, suffix) combination."""
    return mulberry32(hash_seed(stream_key(seed, purpose, suffix)))


def position_key(u, v):
    """Stable text form of a tile position, used to key per-tile streams."""
    return f"{u:.6f}-{v:.6f}"


def generate_seed_string(rng):
    """Random 8-character hex seed.

    Args:
        rng: Anything with a random() method (e.g. random.Random)
    """
    return "".join(
        SEED_ALPHABET[int(rng.random() * len(SEED_ALPHABET))]
        for _ in range(SEED_LENGTH)
    )
