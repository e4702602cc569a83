"""Shared client defaults (base URLs, timeouts) for external services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ControlPlaneDefaults:
    base_url: str = "https://api.machines.dev/v1"
    graphql_url: str = "https://api.fly.io/graphql"
    timeout_seconds: float = 10.0


@dataclass(frozen=True, slots=True)
class DirectExecDefaults:
    timeout_seconds: float = 60.0
    health_timeout_seconds: float = 2.0


@dataclass(frozen=True, slots=True)
class GatewayDefaults:
    api_url: str = "http://localhost:3000"
    exec_url: str = "http://agent-gateway.coder.svc.cluster.local"
    exec_timeout_seconds: float = 60.0
    lookup_timeout_seconds: float = 10.0


# Instances
CONTROL_PLANE = ControlPlaneDefaults()
DIRECT_EXEC = DirectExecDefaults()
GATEWAY = GatewayDefaults()

__all__ = [
    "CONTROL_PLANE",
    "DIRECT_EXEC",
    "GATEWAY",
    "ControlPlaneDefaults",
    "DirectExecDefaults",
    "GatewayDefaults",
]
