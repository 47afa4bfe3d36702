"""Service generation hooks.

The declaration writer does not generate RPC code itself. For each service of a file it
assembles a `Service` description and hands it to the configured `ServiceGenerator`, and
calls `finalize` once after the last service of the file.
"""

from __future__ import annotations

import logging
from typing import Protocol

from prost_codegen import helper
from prost_codegen.writer_dto import Method, Service

logger = logging.getLogger(__name__)


class ServiceGenerator(Protocol):
    """Receives the services of each generated file."""

    def generate(self, service: Service, buf: list[str]) -> None:
        """Append the code for one service to the output lines."""
        ...

    def finalize(self, buf: list[str]) -> None:
        """Append any code that follows the last service of a file."""
        ...


class TraitServiceGenerator:
    """Renders every service as a plain Rust trait with one method per RPC.

    Streaming requests are taken as an iterator, streaming responses are returned as a boxed
    iterator.
    """

    def generate(self, service: Service, buf: list[str]) -> None:
        logger.debug(f"  service trait: {service.name} ({len(service.methods)} method(s))")

        buf.extend(service.comments.lines())
        buf.append(f"pub trait {service.name} {{")

        for method in service.methods:
            buf.extend(f"{helper.INDENT}{line}" if line else line for line in method.comments.lines())
            buf.append(f"{helper.INDENT}{self._signature(method)};")

        buf.append("}")

    def finalize(self, buf: list[str]) -> None:
        """Traits are self-contained, nothing follows the last one."""
        pass

    @staticmethod
    def _signature(method: Method) -> str:
        if method.client_streaming:
            request_type = f"impl Iterator<Item = {method.input_type}>"
        else:
            request_type = method.input_type

        if method.server_streaming:
            response_type = helper.new_group("::std::boxed::Box", [f"dyn Iterator<Item = {method.output_type}>"])
        else:
            response_type = method.output_type

        return f"fn {method.name}(&self, request: {request_type}) -> {response_type}"
