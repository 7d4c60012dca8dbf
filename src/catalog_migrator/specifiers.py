"""Specifier validity rules for workspace dependency entries."""

import re
from typing import Any

import semantic_version

from .manifest import ALIAS_PREFIX, WORKSPACE_WILDCARD

_ALIAS_PATTERN = re.compile(r"^" + re.escape(ALIAS_PREFIX))
_OPERATOR_SPACE_PATTERN = re.compile(r"(<=|>=|<|>|=|~>|~|\^)\s+")


def is_workspace_wildcard(specifier: str) -> bool:
    """True for the local-workspace marker, which names a sibling package."""
    return specifier == WORKSPACE_WILDCARD


def is_alias(specifier: str) -> bool:
    """True for an alias reference such as ``npm:left-pad@^1.0.0``."""
    return _ALIAS_PATTERN.match(specifier) is not None


def normalize_range(specifier: str) -> str:
    """Rewrite loose forms (``>= 1.2.3``, ``~>1.2``) into strict npm syntax."""
    normalized = _OPERATOR_SPACE_PATTERN.sub(r"\1", specifier.strip())
    return normalized.replace("~>", "~")


def is_valid_range(specifier: str) -> bool:
    """True when the specifier parses as an npm semantic-version range."""
    try:
        semantic_version.NpmSpec(specifier)
    except ValueError:
        # Fall back to the loose forms npm itself accepts
        try:
            semantic_version.NpmSpec(normalize_range(specifier))
        except ValueError:
            return False
    return True


def is_consolidatable(specifier: Any) -> bool:
    """
    Decide whether a specifier takes part in version aggregation.

    The workspace marker is always excluded; otherwise an alias or a valid
    semver range is accepted. Anything else (catalog references, file and git
    specifiers, tags like ``latest``) is ignored.
    """
    if not isinstance(specifier, str):
        return False
    if is_workspace_wildcard(specifier):
        return False
    return is_alias(specifier) or is_valid_range(specifier)
