"""Identifier conversion, matching and resolution between protobuf and Rust naming."""

from __future__ import annotations

import re
from collections.abc import Sequence
from fnmatch import fnmatchcase

from prost_codegen.proto_types import SchemaConsistencyError

# Strict and reserved keywords; identifiers matching one of these get a trailing underscore.
RUST_KEYWORDS = frozenset(
    {
        "abstract",
        "alignof",
        "as",
        "async",
        "await",
        "become",
        "box",
        "break",
        "const",
        "continue",
        "crate",
        "do",
        "dyn",
        "else",
        "enum",
        "extern",
        "false",
        "final",
        "fn",
        "for",
        "if",
        "impl",
        "in",
        "let",
        "loop",
        "macro",
        "match",
        "mod",
        "move",
        "mut",
        "offsetof",
        "override",
        "priv",
        "proc",
        "pub",
        "pure",
        "ref",
        "return",
        "self",
        "sizeof",
        "static",
        "struct",
        "super",
        "trait",
        "true",
        "try",
        "type",
        "typeof",
        "unsafe",
        "unsized",
        "use",
        "virtual",
        "where",
        "while",
        "yield",
    }
)

SUPER = "super"
PATH_SEPARATOR = "::"

# An acronym run that is followed by a capitalized word, a capitalized or lowercase word,
# a trailing acronym run, or a run of digits.
_WORD = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z]+[0-9]*|[0-9]+")


def split_words(name: str) -> list[str]:
    """Split an identifier into its words.

    Underscores, dashes and other punctuation separate words, as do lowercase to uppercase
    transitions and the end of an acronym (`HTTPServer` is `HTTP`, `Server`).

    Args:
        name (str): The identifier.

    Returns:
        list[str]: The words, in their original casing.
    """
    return _WORD.findall(name)


def sanitize_name(name: str) -> str:
    """Sanitize a name to avoid Rust keywords.

    If the name is a Rust keyword, append an underscore.
    E.g. 'type' becomes 'type_', 'match' becomes 'match_'.

    Args:
        name (str): The original name.

    Returns:
        str: The sanitized name.
    """
    if name in RUST_KEYWORDS:
        return f"{name}_"
    return name


def to_snake(name: str) -> str:
    """Convert an identifier to Rust snake case, e.g. for field and module names."""
    return sanitize_name("_".join(word.lower() for word in split_words(name)))


def to_upper_camel(name: str) -> str:
    """Convert an identifier to Rust upper camel case, e.g. for type and variant names."""
    ident = "".join(word[0].upper() + word[1:].lower() for word in split_words(name))
    if ident == "Self":
        ident += "_"
    return ident


def match_ident(matcher: str, fq_name: str, field_name: str | None = None) -> bool:
    """Match a fully-qualified protobuf name, and optionally a field of it, against a matcher.

    Matchers are dotted paths:
        - `.` matches everything, an empty matcher matches nothing.
        - A matcher with a leading `.` is fully qualified and matches by prefix,
          e.g. `.my.pkg` matches every type and field in `my.pkg`.
        - Any other matcher matches by suffix, e.g. `Foo.bar` matches the field `bar`
          of every message named `Foo`.

    Each segment may use `*` and `?` wildcards.

    Args:
        matcher (str): The matcher.
        fq_name (str): The fully-qualified name of a message, enum or oneof, with leading dot.
        field_name (str | None): The field (or enum value) name, if a field is matched.

    Returns:
        bool: True, if the matcher selects the name.
    """
    _check_fully_qualified(fq_name)

    if not matcher:
        return False
    if matcher == ".":
        return True

    match_paths = matcher.split(".")
    field_paths = fq_name.split(".")
    if field_name is not None:
        field_paths.append(field_name)

    if len(match_paths) > len(field_paths):
        return False

    if matcher.startswith("."):
        candidates = field_paths[: len(match_paths)]
    else:
        candidates = field_paths[len(field_paths) - len(match_paths) :]

    return all(fnmatchcase(candidate, pattern) for candidate, pattern in zip(candidates, match_paths))


def _check_fully_qualified(fq_name: str) -> None:
    if not fq_name.startswith("."):
        raise SchemaConsistencyError(f"expected a fully-qualified name with a leading dot, got '{fq_name}'")


def relative_path(fq_name: str, package: Sequence[str]) -> list[str]:
    """Compute the shortest relative Rust path from a module scope to a protobuf type.

    The leading path segments that the type's scope has in common with the current scope
    are dropped. Every remaining segment of the current scope becomes a `super` token,
    every remaining segment of the type's scope a snake case module token. The type name
    itself is appended in upper camel case.

    Examples:
        >>> relative_path(".pkg.Foo", ["pkg"])
        ['Foo']
        >>> relative_path(".pkg.a.Target", ["pkg", "a", "c"])
        ['super', 'Target']
        >>> relative_path(".other.Outer.Inner", ["pkg"])
        ['super', 'other', 'outer', 'Inner']

    Args:
        fq_name (str): The fully-qualified protobuf name, with leading dot.
        package (Sequence[str]): The current scope, as raw protobuf segments.

    Raises:
        SchemaConsistencyError: If the name is not fully qualified.

    Returns:
        list[str]: The path tokens.
    """
    _check_fully_qualified(fq_name)

    *ident_path, ident_type = fq_name[1:].split(".")
    local_path = [segment for segment in package if segment]

    common = 0
    while common < len(local_path) and common < len(ident_path) and local_path[common] == ident_path[common]:
        common += 1

    tokens = [SUPER] * (len(local_path) - common)
    tokens.extend(to_snake(segment) for segment in ident_path[common:])
    tokens.append(to_upper_camel(ident_type))
    return tokens


def resolve_ident(fq_name: str, package: Sequence[str]) -> str:
    """Resolve a fully-qualified protobuf name to a Rust path relative to `package`.

    See `relative_path` for the algorithm.
    """
    return PATH_SEPARATOR.join(relative_path(fq_name, package))
