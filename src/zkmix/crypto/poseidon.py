"""
Poseidon hash over the BN254 scalar field, circom-compatible.

Parameters follow the reference Poseidon instantiation used by circomlib
and light-poseidon:

    - S-box: x^5
    - Full rounds: 8 (4 before and 4 after the partial rounds)
    - Partial rounds: 56 for width 2, 57 for width 3
    - Round constants and MDS matrix drawn from the Grain LFSR seeded with
      (field=prime, sbox=x^alpha, n=254, t, R_F, R_P)

The sponge state is initialised as ``[0, *inputs]`` and the digest is
``state[0]`` after one permutation, so ``poseidon([x])`` is circom's
``Poseidon(1)`` and ``poseidon([a, b])`` is ``Poseidon(2)``.

Example:
    >>> from zkmix.crypto.poseidon import poseidon
    >>> digest = poseidon([1, 2])
    >>> hex(digest)
    '0x115cc0f5e7d690413df64c6b9662e9cf2a3617f2743245519e19607a4417189a'
"""

import threading
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617
FIELD_BITS = 254
ALPHA = 5
FULL_ROUNDS = 8

# Partial rounds indexed by state width t.
PARTIAL_ROUNDS = {2: 56, 3: 57}


@dataclass(frozen=True)
class PoseidonParams:
    """Round constants and MDS matrix for one state width."""

    width: int
    full_rounds: int
    partial_rounds: int
    round_constants: Tuple[int, ...]
    mds: Tuple[Tuple[int, ...], ...]


class GrainLFSR:
    """
    Grain LFSR in self-shrinking mode, as in the Poseidon parameter generator.

    The 80-bit register is seeded with the instance description and clocked
    160 times before any output is taken.
    """

    def __init__(self, width: int, full_rounds: int, partial_rounds: int):
        seed = (
            _bits(1, 2)  # prime field
            + _bits(0, 4)  # x^alpha S-box
            + _bits(FIELD_BITS, 12)
            + _bits(width, 12)
            + _bits(full_rounds, 10)
            + _bits(partial_rounds, 10)
            + [1] * 30
        )
        self._register = deque(seed)
        for _ in range(160):
            self._clock()

    def _clock(self) -> int:
        r = self._register
        bit = r[62] ^ r[51] ^ r[38] ^ r[23] ^ r[13] ^ r[0]
        r.popleft()
        r.append(bit)
        return bit

    def next_bit(self) -> int:
        # Bits are consumed in pairs: the second is emitted only if the first is 1.
        while True:
            if self._clock() == 1:
                return self._clock()
            self._clock()

    def next_int(self, num_bits: int) -> int:
        value = 0
        for _ in range(num_bits):
            value = (value << 1) | self.next_bit()
        return value

    def next_field_element(self) -> int:
        """Rejection-sample a value below the modulus."""
        while True:
            value = self.next_int(FIELD_BITS)
            if value < FIELD_MODULUS:
                return value


def _bits(value: int, width: int) -> List[int]:
    return [int(c) for c in format(value, f"0{width}b")]


def _generate_params(width: int) -> PoseidonParams:
    if width not in PARTIAL_ROUNDS:
        raise ValueError(f"Unsupported Poseidon width: {width}")

    partial_rounds = PARTIAL_ROUNDS[width]
    grain = GrainLFSR(width, FULL_ROUNDS, partial_rounds)

    num_constants = (FULL_ROUNDS + partial_rounds) * width
    round_constants = tuple(grain.next_field_element() for _ in range(num_constants))

    # Cauchy matrix M[i][j] = 1 / (x_i + y_j) with distinct x, y.
    while True:
        samples = [grain.next_int(FIELD_BITS) % FIELD_MODULUS for _ in range(2 * width)]
        while len(set(samples)) != len(samples):
            samples = [grain.next_int(FIELD_BITS) % FIELD_MODULUS for _ in range(2 * width)]
        xs, ys = samples[:width], samples[width:]
        if all((x + y) % FIELD_MODULUS != 0 for x in xs for y in ys):
            break

    mds = tuple(
        tuple(pow((x + y) % FIELD_MODULUS, -1, FIELD_MODULUS) for y in ys)
        for x in xs
    )

    return PoseidonParams(
        width=width,
        full_rounds=FULL_ROUNDS,
        partial_rounds=partial_rounds,
        round_constants=round_constants,
        mds=mds,
    )


_params_cache: Dict[int, PoseidonParams] = {}
_params_lock = threading.Lock()


def get_params(width: int) -> PoseidonParams:
    """Return the cached parameters for ``width``, generating them on first use."""
    params = _params_cache.get(width)
    if params is not None:
        return params

    with _params_lock:
        params = _params_cache.get(width)
        if params is None:
            params = _generate_params(width)
            _params_cache[width] = params
    return params


def permute(state: Sequence[int], params: PoseidonParams) -> List[int]:
    """Apply the Poseidon permutation to ``state``."""
    t = params.width
    p = FIELD_MODULUS
    rc = params.round_constants
    mds = params.mds
    half_full = params.full_rounds // 2
    total_rounds = params.full_rounds + params.partial_rounds

    state = list(state)
    for r in range(total_rounds):
        offset = r * t
        state = [(state[i] + rc[offset + i]) % p for i in range(t)]

        if r < half_full or r >= half_full + params.partial_rounds:
            state = [pow(s, ALPHA, p) for s in state]
        else:
            state[0] = pow(state[0], ALPHA, p)

        state = [sum(mds[i][j] * state[j] for j in range(t)) % p for i in range(t)]

    return state


def poseidon(inputs: Sequence[int]) -> int:
    """
    Hash one or two field elements.

    Raises:
        ValueError: If an input is outside [0, FIELD_MODULUS) or the arity
            is unsupported
    """
    for value in inputs:
        if not 0 <= value < FIELD_MODULUS:
            raise ValueError("Poseidon input is not a canonical field element")

    params = get_params(len(inputs) + 1)
    return permute([0, *inputs], params)[0]
