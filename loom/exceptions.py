"""
Module: exceptions

Purpose: Domain-specific exception hierarchy for the visualization runtime.

All exceptions carry a context dict. Apart from RegistryError and
BootstrapError, none of them escape a bootstrap pass or a step notification:
the orchestrator and the narrative bridge catch them, log them and collect
them on the runtime context so a broken visualization degrades to an inert
container.
"""

from typing import Any


class LoomError(Exception):
    """Base exception for all runtime errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


class RegistryError(LoomError):
    """Raised when the adapter registry is built from an invalid catalog."""

    def __init__(
        self,
        message: str,
        *,
        descriptor_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if descriptor_id is not None:
            ctx["descriptor_id"] = descriptor_id
        super().__init__(message, context=ctx)
        self.descriptor_id = descriptor_id


class BootstrapError(LoomError):
    """Raised when a bootstrap pass is requested twice for the same page."""


class DetectionError(LoomError):
    """A detection predicate raised; the descriptor is treated as not detected."""

    def __init__(
        self,
        message: str,
        *,
        descriptor_id: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["descriptor_id"] = descriptor_id
        super().__init__(message, context=ctx)
        self.descriptor_id = descriptor_id


class AssetLoadError(LoomError):
    """A style or script asset could not be fetched."""

    def __init__(
        self,
        message: str,
        *,
        url: str,
        kind: str = "script",
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["url"] = url
        ctx["kind"] = kind
        super().__init__(message, context=ctx)
        self.url = url
        self.kind = kind


class OptionsParseError(LoomError):
    """The options attribute on a matched element is not a JSON object."""

    def __init__(
        self,
        message: str,
        *,
        element_id: str,
        raw_options: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["element_id"] = element_id
        if raw_options is not None:
            ctx["raw_options"] = raw_options[:200]  # Truncate for logging
        super().__init__(message, context=ctx)
        self.element_id = element_id
        self.raw_options = raw_options


class UpdatePayloadParseError(LoomError):
    """The update attribute on a step element is not a JSON object."""

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        raw_payload: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if step is not None:
            ctx["step"] = step
        if raw_payload is not None:
            ctx["raw_payload"] = raw_payload[:200]
        super().__init__(message, context=ctx)
        self.step = step
        self.raw_payload = raw_payload


class UnknownInstanceError(LoomError):
    """No mounted instance is registered under the requested identity."""

    def __init__(
        self,
        message: str,
        *,
        instance_id: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["instance_id"] = instance_id
        super().__init__(message, context=ctx)
        self.instance_id = instance_id


class AdapterOperationError(LoomError):
    """An adapter's init, render or update raised."""

    def __init__(
        self,
        message: str,
        *,
        descriptor_id: str,
        operation: str,
        element_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["descriptor_id"] = descriptor_id
        ctx["operation"] = operation
        if element_id is not None:
            ctx["element_id"] = element_id
        super().__init__(message, context=ctx)
        self.descriptor_id = descriptor_id
        self.operation = operation
        self.element_id = element_id
