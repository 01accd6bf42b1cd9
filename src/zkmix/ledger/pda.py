"""Program-derived state address lookup."""

from solders.pubkey import Pubkey

from zkmix.exceptions import InputError

STATE_SEED = b"mixer_state"


def parse_pubkey(value: str, field: str) -> Pubkey:
    """
    Parse a base58 public key.

    Raises:
        InputError: Naming ``field`` if the string is not a valid public key
    """
    try:
        return Pubkey.from_string(value)
    except (ValueError, TypeError) as e:
        raise InputError(field, f"invalid public key: {e}")


def derive_state_address(program_id: str, seed: bytes = STATE_SEED) -> str:
    """
    Derive the mixer state account for ``program_id``.

    Deterministic: find_program_address over ``[seed]``.
    """
    program = parse_pubkey(program_id, "program_pubkey")
    state, _bump = Pubkey.find_program_address([seed], program)
    return str(state)
