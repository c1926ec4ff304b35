"""
SGX Admission Webhook - Mutation Module

This module provides the Pod mutation logic adding SGX device resources,
aesmd socket wiring and the EPC usage annotation.
"""

from .resources import get_requested_resources, ResourceExtractionError
from .quoting import QuotingMode, select_quoting_mode
from .sgx_mutator import SGXMutator, MutationResult

__all__ = ['SGXMutator', 'MutationResult', 'QuotingMode',
           'select_quoting_mode', 'get_requested_resources', 'ResourceExtractionError']
