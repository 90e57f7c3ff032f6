"""Confirmation policies for destructive operations.

A policy receives a short description of the action ("Delete label 'bug'
from octo/repo") and answers whether to go ahead. Resource operations
consult it before issuing DELETE calls and skip the call when declined.
"""

from collections.abc import Callable

ConfirmationPolicy = Callable[[str], bool]


def always_confirm(action: str) -> bool:
    return True


def never_confirm(action: str) -> bool:
    return False


def prompt_confirm(
    input_func: Callable[[str], str] = input,
) -> ConfirmationPolicy:
    """Build a policy that asks on the terminal.

    Args:
        input_func: Prompt function, ``input`` by default

    Returns:
        Policy accepting ``y`` or ``yes`` (case-insensitive)
    """

    def policy(action: str) -> bool:
        try:
            answer = input_func(f"{action}? [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")

    return policy
