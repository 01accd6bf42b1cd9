"""Cryptographic primitives module"""

from zkmix.crypto.poseidon import (
    FIELD_MODULUS,
    PoseidonParams,
    get_params,
    permute,
    poseidon,
)

__all__ = [
    'FIELD_MODULUS',
    'PoseidonParams',
    'get_params',
    'permute',
    'poseidon',
]
