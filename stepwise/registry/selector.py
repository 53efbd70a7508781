"""Skip resolution for scenarios and steps.

Decides which entries of an ordered mapping actually run this pass:

1. Each entry starts from its own ``skip`` flag.
2. If any entry is marked ``only``, every entry not marked ``only`` is skipped.
3. Every entry marked ``always`` is un-skipped, whatever steps 1 and 2 said.
"""

from typing import Mapping, Protocol


class Flagged(Protocol):
    skip: bool
    only: bool
    always: bool


def resolve(entities: Mapping[str, Flagged]) -> dict[str, bool]:
    """Compute the effective skip flag for every entry.

    Args:
        entities: Insertion-ordered mapping of id to scenario or step.

    Returns:
        Mapping of id to effective skip, in the same order. The input
        entries are left untouched.
    """
    only_set = {key for key, entity in entities.items() if entity.only}
    always_set = {key for key, entity in entities.items() if entity.always}

    effective = {key: entity.skip for key, entity in entities.items()}

    if only_set:
        for key in effective:
            if key not in only_set:
                effective[key] = True

    for key in always_set:
        effective[key] = False

    return effective


def selected(entities: Mapping[str, Flagged]) -> list[str]:
    """Ids that will run, in order."""
    return [key for key, skip in resolve(entities).items() if not skip]
