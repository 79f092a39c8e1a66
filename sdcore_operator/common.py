"""Naming and provider helpers shared by the NF reconcilers."""

from __future__ import annotations

from .kube import NFDeployment


def get_namespaced_name(nf_deployment: NFDeployment, suffix: str) -> str:
    """Return the name of a resource derived from an NF deployment."""
    return f"{nf_deployment.name}-{suffix}"


def is_provider_sdcore_upf(provider: str) -> bool:
    """True if the provider is the SD-Core UPF."""
    return provider.casefold() == "upf.sdcore.io"


def is_provider_sdcore(provider: str) -> bool:
    """True if the provider is SD-Core."""
    return provider.casefold() == "sdcore" or provider.lower().endswith(".sdcore.io")