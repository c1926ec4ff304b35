"""
SGX Admission Webhook - Admission Module

Provides the mutating admission webhook server, AdmissionReview decoding and
the manifests registering the webhook with the cluster.
"""

from .admission_controller import SGXAdmissionController
from .decoder import PodDecoder, DecodeError
from .manifest import create_webhook_manifest

__all__ = ['SGXAdmissionController', 'PodDecoder', 'DecodeError', 'create_webhook_manifest']
