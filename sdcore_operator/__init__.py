"""Reconcilers that turn NFDeployment resources into SD-Core AMF, SMF and UPF workloads."""

__version__ = "0.1.0"