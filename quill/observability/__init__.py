"""Logging setup shared by the web app and tooling."""

from __future__ import annotations

from quill.observability.logging import CorrelationIdFilter, configure_logging

__all__ = ["CorrelationIdFilter", "configure_logging"]
