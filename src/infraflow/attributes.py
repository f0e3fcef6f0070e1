"""
Tolerant accessors for resource attributes.

Attribute values come from JSON state files and HCL configuration, so the
same field may arrive as a string, a float, an int, a bool or a list. These
helpers convert what can be converted and report a miss for the rest.
Every getter returns ``(value, found)``.
"""

from typing import Any, List, Mapping, Optional, Tuple

TRUE_STRINGS = frozenset({"true", "True", "TRUE", "1", "yes", "Yes", "YES"})
FALSE_STRINGS = frozenset({"false", "False", "FALSE", "0", "no", "No", "NO"})


def _number_to_string(value: float) -> str:
    # JSON numbers decode as floats; ports and ids read better without ".0"
    if value.is_integer():
        return str(int(value))
    return str(value)


def get_string(attrs: Mapping[str, Any], key: str) -> Tuple[str, bool]:
    """
    Extract a string attribute, converting scalars when needed.

    Args:
        attrs: Attribute mapping.
        key: Attribute name.

    Returns:
        Tuple of (value, found). Lists, mappings and None are not found.
    """
    if key not in attrs:
        return "", False

    value = attrs[key]
    if isinstance(value, bool):
        return ("true" if value else "false"), True
    if isinstance(value, str):
        return value, True
    if isinstance(value, int):
        return str(value), True
    if isinstance(value, float):
        return _number_to_string(value), True
    return "", False


def get_float(attrs: Mapping[str, Any], key: str) -> Tuple[float, bool]:
    """Extract a numeric attribute as float, parsing numeric strings."""
    value = attrs.get(key)
    if isinstance(value, bool) or value is None:
        return 0.0, False
    if isinstance(value, (int, float)):
        return float(value), True
    if isinstance(value, str):
        try:
            return float(value), True
        except ValueError:
            return 0.0, False
    return 0.0, False


def get_int(attrs: Mapping[str, Any], key: str) -> Tuple[int, bool]:
    """Extract an integer attribute; floats are truncated."""
    value = attrs.get(key)
    if isinstance(value, bool) or value is None:
        return 0, False
    if isinstance(value, int):
        return value, True
    if isinstance(value, float):
        return int(value), True
    if isinstance(value, str):
        try:
            return int(value), True
        except ValueError:
            return 0, False
    return 0, False


def get_bool(attrs: Mapping[str, Any], key: str) -> Tuple[bool, bool]:
    """Extract a boolean attribute, accepting common string spellings."""
    value = attrs.get(key)
    if isinstance(value, bool):
        return value, True
    if isinstance(value, str):
        if value in TRUE_STRINGS:
            return True, True
        if value in FALSE_STRINGS:
            return False, True
        return False, False
    if isinstance(value, (int, float)):
        return value != 0, True
    return False, False


def get_string_list(attrs: Mapping[str, Any], key: str) -> Tuple[List[str], bool]:
    """
    Extract a list of strings.

    Numeric items are converted, other items are skipped, and a single
    string is wrapped in a list. An empty result counts as not found.
    """
    value = attrs.get(key)
    if isinstance(value, str):
        return [value], True
    if not isinstance(value, (list, tuple)):
        return [], False

    result = []
    for item in value:
        if isinstance(item, bool):
            continue
        if isinstance(item, str):
            result.append(item)
        elif isinstance(item, int):
            result.append(str(item))
        elif isinstance(item, float):
            result.append(_number_to_string(item))
    return result, bool(result)


def get_mapping(
    attrs: Mapping[str, Any], key: str
) -> Tuple[Optional[Mapping[str, Any]], bool]:
    """Extract a nested mapping attribute."""
    value = attrs.get(key)
    if isinstance(value, Mapping):
        return value, True
    return None, False


def get_mapping_list(
    attrs: Mapping[str, Any], key: str
) -> Tuple[List[Mapping[str, Any]], bool]:
    """
    Extract a list of nested blocks, such as firewall rules.

    A single mapping is treated as a one-element list; non-mapping items
    are skipped.
    """
    value = attrs.get(key)
    if isinstance(value, Mapping):
        return [value], True
    if not isinstance(value, (list, tuple)):
        return [], False

    blocks = [item for item in value if isinstance(item, Mapping)]
    return blocks, bool(blocks)
