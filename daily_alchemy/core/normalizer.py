"""
Element name identity and combination keys.

Names compare case-insensitively after trimming. A combination key is the
unordered pair of normalized names joined with ``|`` in lexicographic order,
so ``combination_key("Fire", "water") == combination_key("WATER", " fire ")``.
Display strings are the caller's concern; nothing here returns one.
"""
import re
from typing import NewType

from daily_alchemy.core.errors import InvalidName

CombinationKey = NewType("CombinationKey", str)

MAX_NAME_LENGTH = 100
KEY_SEPARATOR = "|"

# Starter elements (same every day). Never a result of any combination.
STARTER_ELEMENTS = (
    ("Earth", "🌍"),
    ("Water", "💧"),
    ("Fire", "🔥"),
    ("Wind", "💨"),
)
STARTER_NAMES = frozenset(name.lower() for name, _ in STARTER_ELEMENTS)

# Operands of admin placeholder records, and the key prefix those records use
ADMIN_OPERAND_A = "_ADMIN"
ADMIN_OPERAND_B = "_DEFINED"
RESERVED_OPERANDS = frozenset({ADMIN_OPERAND_A.lower(), ADMIN_OPERAND_B.lower()})
ADMIN_KEY_PREFIX = "_admin_"


def normalize_name(value) -> str:
    """Trim and lowercase an element name; reject empty, over-long and non-string input."""
    if not isinstance(value, str):
        raise InvalidName(f"Element name must be a string, got {type(value).__name__}")
    trimmed = value.strip()
    if not trimmed:
        raise InvalidName("Element name must not be empty")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise InvalidName(f"Element name must be at most {MAX_NAME_LENGTH} characters")
    return trimmed.lower()


def combination_key(a, b) -> CombinationKey:
    first, second = sorted((normalize_name(a), normalize_name(b)))
    return CombinationKey(f"{first}{KEY_SEPARATOR}{second}")


def names_equal(a: str, b: str) -> bool:
    return normalize_name(a) == normalize_name(b)


def is_starter(name: str) -> bool:
    return normalize_name(name) in STARTER_NAMES


def is_reserved(name: str) -> bool:
    return isinstance(name, str) and name.strip().lower() in RESERVED_OPERANDS


def is_admin_key(key: str) -> bool:
    return key.startswith(ADMIN_KEY_PREFIX)


def admin_placeholder_key(target_name: str) -> CombinationKey:
    slug = re.sub(r"\s+", "_", normalize_name(target_name))
    return CombinationKey(f"{ADMIN_KEY_PREFIX}{slug}")
