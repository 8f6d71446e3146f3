"""Code generation — random OTP strings from a character-class policy."""

import secrets
import string

from onehitter.config import CodePolicy

DEFAULT_LENGTH = 6
MAX_LENGTH = 64

UPPER_CHARS = string.ascii_uppercase
LOWER_CHARS = string.ascii_lowercase
DIGIT_CHARS = string.digits
SPECIAL_CHARS = "#!&@"


def resolve_length(length) -> int:
    """Clamp a requested length: invalid or non-positive -> 6, above 64 -> 64."""
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        return DEFAULT_LENGTH
    return min(length, MAX_LENGTH)


def alphabet_for(policy: CodePolicy) -> str:
    """Union of the enabled character classes. Never empty: falls back to digits."""
    alphabet = ""
    if policy.upper:
        alphabet += UPPER_CHARS
    if policy.lower:
        alphabet += LOWER_CHARS
    if policy.digits:
        alphabet += DIGIT_CHARS
    if policy.special:
        alphabet += SPECIAL_CHARS
    return alphabet or DIGIT_CHARS


def make_code(policy: CodePolicy | None = None) -> str:
    """Generate a code of the resolved length, each character drawn with ``secrets``.

    Args:
        policy: Length and character classes. Defaults to six digits.

    Returns:
        The plaintext code. It is never stored; only its keyed hash is.
    """
    policy = policy or CodePolicy()
    alphabet = alphabet_for(policy)
    return "".join(secrets.choice(alphabet) for _ in range(resolve_length(policy.length)))
