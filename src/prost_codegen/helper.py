"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

from collections.abc import Sequence

from prost_codegen.proto_types import SchemaConsistencyError

INDENT = "    "

_NAMED_ESCAPES: dict[str, int] = {
    "a": 0x07,
    "b": 0x08,
    "f": 0x0C,
    "n": 0x0A,
    "r": 0x0D,
    "t": 0x09,
    "v": 0x0B,
    "\\": 0x5C,
    "?": 0x3F,
    "'": 0x27,
    '"': 0x22,
}

_OCTAL_DIGITS = "01234567"
_HEX_DIGITS = "0123456789abcdefABCDEF"

# Escapes produced for bytes by a Rust byte string literal, everything else printable is kept.
_BYTE_ESCAPES: dict[int, str] = {
    0x09: "\\t",
    0x0A: "\\n",
    0x0D: "\\r",
    0x22: '\\"',
    0x27: "\\'",
    0x5C: "\\\\",
}


def unescape_c_escape_string(value: str) -> bytes:
    """Decode a C-style escaped string, as protoc reports `bytes` default values, into raw bytes.

    Supports octal (`\\0` to `\\377`, up to three digits), hex (`\\xNN`, exactly two digits)
    and the named escapes `\\a \\b \\f \\n \\r \\t \\v \\\\ \\? \\' \\"`.

    Examples:
        >>> unescape_c_escape_string(r"\\012\\x41b")
        b'\\nAb'

    Args:
        value (str): The escaped literal.

    Raises:
        SchemaConsistencyError: If the literal contains a malformed escape sequence.

    Returns:
        bytes: The decoded bytes.
    """
    src = value.encode("utf-8")
    text = src.decode("latin-1")
    length = len(text)
    dst = bytearray()

    p = 0
    while p < length:
        char = text[p]
        if char != "\\":
            dst.append(ord(char))
            p += 1
            continue

        p += 1
        if p == length:
            raise SchemaConsistencyError(f"invalid c-escaped default binary value ({value}): ends with '\\'")

        char = text[p]
        if char in _NAMED_ESCAPES:
            dst.append(_NAMED_ESCAPES[char])
            p += 1

        elif char in _OCTAL_DIGITS:
            octal = 0
            for _ in range(3):
                if p < length and text[p] in _OCTAL_DIGITS:
                    octal = octal * 8 + int(text[p])
                    p += 1
                else:
                    break
            if octal > 0xFF:
                raise SchemaConsistencyError(f"invalid c-escaped default binary value ({value}): octal out of range")
            dst.append(octal)

        elif char in "xX":
            digits = text[p + 1 : p + 3]
            if len(digits) < 2:
                raise SchemaConsistencyError(f"invalid c-escaped default binary value ({value}): incomplete hex value")
            if any(digit not in _HEX_DIGITS for digit in digits):
                raise SchemaConsistencyError(f"invalid c-escaped default binary value ({value}): invalid hex value")
            dst.append(int(digits, 16))
            p += 3

        else:
            raise SchemaConsistencyError(f"invalid c-escaped default binary value ({value}): invalid escape")

    return bytes(dst)


def escape_bytes(data: bytes) -> str:
    """Escape raw bytes as the contents of a Rust byte string literal.

    Printable ASCII is kept, tab, newline, carriage return, quotes and backslash use their
    short escapes, everything else becomes `\\xNN`.

    Args:
        data (bytes): The raw bytes.

    Returns:
        str: The escaped contents, without the surrounding `b"` and `"`.
    """
    out: list[str] = []
    for byte in data:
        if byte in _BYTE_ESCAPES:
            out.append(_BYTE_ESCAPES[byte])
        elif 0x20 <= byte < 0x7F:
            out.append(chr(byte))
        else:
            out.append(f"\\x{byte:02x}")
    return "".join(out)


def escape_string_contents(value: str) -> str:
    """Escape text for embedding inside a Rust string literal, e.g. an attribute argument."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("'", "\\'")


def bytes_default_literal(default: str) -> str:
    """Re-encode a protobuf `bytes` default as an attribute-embedded Rust byte string literal.

    Args:
        default (str): The C-escaped default, as found in the field descriptor.

    Returns:
        str: The literal, e.g. `b\\"a\\\\n\\"` for the bytes `a\\n`.
    """
    return f'b\\"{escape_string_contents(escape_bytes(unescape_c_escape_string(default)))}\\"'


def strip_enum_prefix(prefix: str, name: str) -> str:
    """Strip an enum's type name from the front of one of its value names.

    Both names are expected in upper camel case. The prefix is only stripped at a true word
    boundary, i.e. when the remainder starts with an uppercase character, so that "Foo" is
    not stripped from "Foobar", and a value is never stripped down to nothing or to a
    leading digit.

    Args:
        prefix (str): The enum type name.
        name (str): The value name.

    Returns:
        str: The value name without the prefix, or the unchanged value name.
    """
    stripped = name[len(prefix) :] if name.startswith(prefix) else name

    if stripped[:1].isupper():
        return stripped

    return name


def join_parameters(parameters: Sequence[str] | None) -> str:
    """Joins parameters by means of ', '.

    Args:
        parameters (Sequence[str] | None): The parameters to join.

    Returns:
        str: The joined parameters.
    """
    if parameters:
        return ", ".join(p for p in parameters if p)

    else:
        return ""


def new_group(name: str, members: list[str]) -> str:
    """Create a string for a generic type and its members.

    For example, when the group name is '::std::collections::HashMap', and the members are
    'String', and 'i32', the output will be '::std::collections::HashMap<String, i32>'.

    Args:
        name (str): The name of the generic type.
        members (list[str]): The type arguments.

    Returns:
        str: The resulting group string.
    """
    return f"{name}<{join_parameters(members)}>"


def new_attribute(name: str, parameters: Sequence[str] | None = None) -> str:
    """Create an outer attribute, e.g. `#[prost(int32, tag="1")]`.

    Args:
        name (str): The attribute name.
        parameters (Sequence[str] | None, optional): The attribute arguments, if any. Defaults to None.

    Returns:
        str: The attribute string.
    """
    if parameters:
        return f"#[{name}({join_parameters(parameters)})]"

    else:
        return f"#[{name}]"


def new_derive(traits: Sequence[str]) -> str:
    """Create a derive attribute for the given traits."""
    return new_attribute("derive", traits)


def new_key_value(key: str, value: str | int) -> str:
    """Create a `key="value"` attribute argument."""
    return f'{key}="{value}"'
