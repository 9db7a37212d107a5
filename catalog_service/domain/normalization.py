"""Normalisation rules for option names, option values and keys."""

import re

ATTRIBUTE_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]{2,49}$")
HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

COLOR_OPTION_NAMES = frozenset({"color", "colour"})

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^a-z0-9_]")
_UNDERSCORES = re.compile(r"_+")


def normalize_option_name(name: str) -> str:
    """Turn a user-entered option name into its snake_case key.

    Lowercases, replaces whitespace with ``_`` and strips punctuation.

    Args:
        name: Option name as entered, e.g. ``"Screen Size (in)"``.

    Returns:
        Normalised key, e.g. ``"screen_size_in"``.
    """
    result = _WHITESPACE.sub("_", name.strip().lower())
    result = _NON_WORD.sub("", result)
    return _UNDERSCORES.sub("_", result).strip("_")


def normalize_option_value(value: str) -> str:
    """Lowercase and trim an option value."""
    return value.strip().lower()


def is_color_option(name: str) -> bool:
    return normalize_option_name(name) in COLOR_OPTION_NAMES


def is_valid_attribute_key(key: str) -> bool:
    return bool(ATTRIBUTE_KEY_PATTERN.match(key))


def is_valid_hex_color(code: str) -> bool:
    return bool(HEX_COLOR_PATTERN.match(code))


def tokenize(text: str | None) -> list[str]:
    """Split free text into lowercase search tokens."""
    if not text:
        return []
    return [token for token in re.split(r"[^\w]+", text.lower()) if token]
