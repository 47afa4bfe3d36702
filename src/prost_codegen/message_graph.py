"""Containment graph of all messages in a schema set, used to break recursive type definitions."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from google.protobuf.descriptor_pb2 import DescriptorProto, FieldDescriptorProto, FileDescriptorProto

logger = logging.getLogger(__name__)


class MessageGraph:
    """A directed graph of messages, with an edge from each message to the messages it embeds by value.

    A message embeds another by value through every non-repeated, message-typed field,
    including oneof members. Repeated fields are stored behind a `Vec` and never contribute
    an edge.

    The graph is built once per schema set and is read-only afterwards, so one instance can
    be shared by every file (and every worker) of a generation run.
    """

    def __init__(self, files: Iterable[FileDescriptorProto]):
        """Build the graph and precompute which messages each message reaches.

        Args:
            files (Iterable[FileDescriptorProto]): All files of the schema set, including imports.
        """
        self._edges: dict[str, set[str]] = {}

        for file in files:
            package = f".{file.package}" if file.package else ""
            for message in file.message_type:
                self._add_message(package, message)

        self._reachable: dict[str, frozenset[str]] = {node: self._walk(node) for node in self._edges}

        logger.debug(f"Built message graph with {len(self._edges)} message(s).")

    def _add_message(self, scope: str, message: DescriptorProto) -> None:
        name = f"{scope}.{message.name}"
        targets = self._edges.setdefault(name, set())

        for field in message.field:
            if field.label != FieldDescriptorProto.LABEL_REPEATED and field.type == FieldDescriptorProto.TYPE_MESSAGE:
                targets.add(field.type_name)
                self._edges.setdefault(field.type_name, set())

        for nested in message.nested_type:
            self._add_message(name, nested)

    def _walk(self, start: str) -> frozenset[str]:
        seen: set[str] = set()
        stack = list(self._edges.get(start, ()))
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            stack.extend(self._edges.get(node, ()))
        return frozenset(seen)

    def __contains__(self, name: str) -> bool:
        return name in self._edges

    def is_nested(self, outer: str, inner: str) -> bool:
        """Check whether message `inner` is (transitively) embedded by value in message `outer`.

        Args:
            outer (str): The fully-qualified name of the containing message candidate.
            inner (str): The fully-qualified name of the contained message candidate.

        Returns:
            bool: True, if a chain of by-value fields leads from `outer` to `inner`.
        """
        return inner in self._reachable.get(outer, frozenset())
