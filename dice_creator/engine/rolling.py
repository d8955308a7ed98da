"""
Dice rolling backed by a cryptographically secure, unbiased integer source.

Reducing a random draw with `%` favours the low values whenever the draw's
range is not a multiple of the target range. get_secure_random_int draws just
enough bytes to cover the range and rejects draws at or above the largest
multiple of the range, so every outcome is equally likely. The loop has no
iteration cap: a single draw is rejected with probability below 1/2, so the
expected number of draws is under 2.
"""

import secrets
from collections.abc import Callable

from dice_creator.engine.state import DiceSet, Die, DieRollResult, Face, RollResult
from dice_creator.engine.utils import current_timestamp


def get_secure_random_int(
    min_value: int,
    max_value: int,
    random_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> int:
    """
    Return a uniformly distributed integer in [min_value, max_value] (inclusive).

    Args:
        min_value: Lowest possible result
        max_value: Highest possible result
        random_bytes: Byte source, secrets.token_bytes unless a test supplies a scripted one

    Raises:
        ValueError: If min_value > max_value
    """
    if min_value > max_value:
        raise ValueError("min must be less than or equal to max")

    span = max_value - min_value + 1
    # ceil(log2(span) / 8) without floating point; 0 when span == 1
    bytes_needed = ((span - 1).bit_length() + 7) // 8
    max_byte_value = 256 ** bytes_needed
    threshold = (max_byte_value // span) * span

    while True:
        value = int.from_bytes(random_bytes(bytes_needed), "big")
        if value < threshold:
            return min_value + (value % span)


def roll_die(die: Die) -> Face:
    """Roll a die and return the face that came up."""
    if not die.faces:
        raise ValueError("Die has no faces")
    index = get_secure_random_int(0, len(die.faces) - 1)
    return die.faces[index]


def roll_dice_set(dice: list[Die]) -> list[Face]:
    """Roll each die independently; faces come back in the same order as the dice."""
    if not dice:
        raise ValueError("No dice to roll")
    return [roll_die(die) for die in dice]


def roll_dice_set_result(dice_set: DiceSet | str, dice: list[Die]) -> RollResult:
    """
    Roll dice for a set and record which face each die showed.

    Args:
        dice_set: The set being rolled (or its id)
        dice: The set's dice, in roll order

    Returns:
        RollResult with one DieRollResult per die (rolled_index is 1-based)
    """
    if not dice:
        raise ValueError("No dice to roll")
    set_id = dice_set if isinstance(dice_set, str) else dice_set.id
    results = []
    for die in dice:
        if not die.faces:
            raise ValueError("Die has no faces")
        index = get_secure_random_int(0, len(die.faces) - 1)
        results.append(DieRollResult(die_id=die.id, face=die.faces[index], rolled_index=index + 1))
    return RollResult(set_id=set_id, results=results, timestamp=current_timestamp())
