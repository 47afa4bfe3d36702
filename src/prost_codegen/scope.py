"""Mutable emission state for generating the declarations of one file."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from prost_codegen import helper
from prost_codegen.ident import to_snake


class NoParentError(Exception):
    """Raised when leaving a module scope that was never entered."""

    pass


class EmissionState:
    """The output buffer and the traversal context of one generation pass.

    The state tracks:
        - the output lines and the current indentation depth,
        - the current module scope, as raw protobuf segments (the file's package, extended by
          one segment per message whose nested types are being emitted),
        - the current source path, the sequence of (field number, index) pairs that locates
          the visited declaration in the file descriptor.

    Depth, module scope and source path are only changed through the context managers below,
    which restore the previous value on every exit path.
    """

    def __init__(self, package: str):
        """Initialize an empty state for a file.

        Args:
            package (str): The dotted protobuf package of the file.
        """
        self.lines: list[str] = []
        self._package: list[str] = [segment for segment in package.split(".") if segment]
        self._root_depth = len(self._package)
        self._path: list[int] = []
        self._depth = 0

    @property
    def package(self) -> tuple[str, ...]:
        """The current module scope."""
        return tuple(self._package)

    @property
    def dotted_package(self) -> str:
        """The current module scope, as a dotted protobuf name without leading dot."""
        return ".".join(self._package)

    @property
    def path(self) -> tuple[int, ...]:
        """The current source path."""
        return tuple(self._path)

    @property
    def depth(self) -> int:
        """The current indentation depth."""
        return self._depth

    @property
    def is_root(self) -> bool:
        """Whether no module scope was entered below the file's package."""
        return len(self._package) == self._root_depth

    def add(self, line: str) -> None:
        """Add a line at the current indentation. Empty lines are added without indentation."""
        if line:
            self.lines.append(f"{helper.INDENT * self._depth}{line}")
        else:
            self.lines.append("")

    def extend(self, lines: list[str]) -> None:
        for line in lines:
            self.add(line)

    @contextmanager
    def at(self, *path: int) -> Iterator[None]:
        """Descend the source path for the duration of the block.

        Args:
            *path (int): The path elements to append, e.g. a field number and an index.
        """
        self._path.extend(path)
        try:
            yield
        finally:
            del self._path[len(self._path) - len(path) :]

    @contextmanager
    def indented(self) -> Iterator[None]:
        """Increase the indentation depth for the duration of the block."""
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    @contextmanager
    def block(self, heading: str) -> Iterator[None]:
        """Emit `heading {`, indent the block's body, and close it with `}`."""
        self.add(f"{heading} {{")
        with self.indented():
            yield
        self.add("}")

    def push_mod(self, name: str) -> None:
        """Open a nested module named after a message, and enter its scope.

        Args:
            name (str): The raw protobuf name of the message.
        """
        self.add(f"pub mod {to_snake(name)} {{")
        self._package.append(name)
        self._depth += 1

    def pop_mod(self) -> None:
        """Close the innermost module opened by `push_mod`."""
        if self.is_root:
            raise NoParentError("The current module scope is the file's package and cannot be returned from.")

        self._depth -= 1
        self._package.pop()
        self.add("}")

    @contextmanager
    def module(self, name: str) -> Iterator[None]:
        """Emit the block's declarations inside a nested module, see `push_mod`."""
        self.push_mod(name)
        try:
            yield
        finally:
            self.pop_mod()

    def dumps(self) -> str:
        """The emitted text, one line per buffered line, newline terminated."""
        if not self.is_root or self._depth != 0:
            raise NoParentError(f"Module scope {self.dotted_package!r} is still open at depth {self._depth}.")
        return "".join(f"{line}\n" for line in self.lines)
