"""User customization rules for a generation run."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from prost_codegen.ident import match_ident

if TYPE_CHECKING:
    from prost_codegen.service import ServiceGenerator


@dataclass(frozen=True)
class Config:
    """The customization rules of a generation run.

    The rules are fixed before generation starts and only read while traversing, so one
    instance can be shared by every file of a run.

    Attributes:
        type_attributes: (matcher, attribute) pairs; the attribute is added to every
            message, enum and oneof whose fully-qualified name matches.
        field_attributes: (matcher, attribute) pairs; the attribute is added to every
            field, oneof field and enum value whose name matches.
        btree_map: Matchers for map fields that are emitted as `BTreeMap` instead of `HashMap`.
        extern_paths: Fully-qualified protobuf type names mapped to a Rust type path that is
            used instead of generating the type.
        strip_enum_prefix: Whether enum value names lose the enum name as a prefix.
        well_known_types: Whether well-known protobuf types are substituted by Rust
            primitives and `prost_types` types.
        service_generator: Receives the services of each file. Services are skipped if unset.
    """

    type_attributes: tuple[tuple[str, str], ...] = ()
    field_attributes: tuple[tuple[str, str], ...] = ()
    btree_map: tuple[str, ...] = ()
    extern_paths: Mapping[str, str] = field(default_factory=dict)
    strip_enum_prefix: bool = True
    well_known_types: bool = True
    service_generator: ServiceGenerator | None = field(default=None, compare=False)

    def __post_init__(self):
        """Freeze the rule collections and check that type overrides are fully qualified."""
        object.__setattr__(self, "type_attributes", tuple(tuple(rule) for rule in self.type_attributes))
        object.__setattr__(self, "field_attributes", tuple(tuple(rule) for rule in self.field_attributes))
        object.__setattr__(self, "btree_map", tuple(self.btree_map))

        for proto_path in self.extern_paths:
            if not proto_path.startswith("."):
                raise ValueError(f"Extern path '{proto_path}' must be fully qualified, with a leading dot.")

        object.__setattr__(self, "extern_paths", MappingProxyType(dict(self.extern_paths)))

    def type_attributes_for(self, fq_name: str) -> list[str]:
        """The attributes to add to a type declaration."""
        return [attribute for matcher, attribute in self.type_attributes if match_ident(matcher, fq_name)]

    def field_attributes_for(self, fq_name: str, field_name: str) -> list[str]:
        """The attributes to add to a field of the type `fq_name`."""
        return [
            attribute for matcher, attribute in self.field_attributes if match_ident(matcher, fq_name, field_name)
        ]

    def uses_btree_map(self, fq_name: str, field_name: str) -> bool:
        """Whether a map field is emitted as an ordered map."""
        return any(match_ident(matcher, fq_name, field_name) for matcher in self.btree_map)


def parse_rule(rule: str) -> tuple[str, str]:
    """Split a `MATCHER=VALUE` rule at its first `=`.

    Args:
        rule (str): The rule, e.g. `.my.pkg=#[derive(Eq)]`.

    Raises:
        ValueError: If the rule has no `=`.

    Returns:
        tuple[str, str]: The matcher and the value.
    """
    matcher, separator, value = rule.partition("=")
    if not separator:
        raise ValueError(f"Expected a rule of the form MATCHER=VALUE, got '{rule}'.")
    return matcher.strip(), value.strip()


def parse_rules(rules: Iterable[str]) -> tuple[tuple[str, str], ...]:
    return tuple(parse_rule(rule) for rule in rules)
