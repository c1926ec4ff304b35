"""
SGX Admission Webhook

Kubernetes mutating admission webhook preparing Pods for Intel SGX: it adds
the enclave/provision device resources next to the EPC request, wires the
aesmd socket for shared quote generation and annotates total EPC usage.
"""

__version__ = "0.1.0"
