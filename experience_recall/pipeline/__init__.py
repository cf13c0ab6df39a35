"""
Pipeline Module

Wires configuration, providers, stores and the orchestrator together.
"""

from .engine import RecallEngine, create_store

__all__ = ['RecallEngine', 'create_store']
