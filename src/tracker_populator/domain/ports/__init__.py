"""Ports implemented by adapters."""

from __future__ import annotations

from .tracker import ApiResponse, TrackerGateway

__all__ = ["ApiResponse", "TrackerGateway"]
