#!/usr/bin/env python3
"""
Kubernetes Admission Controller for SGX Pods

Mutating admission webhook that prepares Pods requesting SGX EPC memory:
adds the enclave/provision device resources, the aesmd socket wiring and
the EPC usage annotation. Changes are returned as a JSON Patch.
"""

import argparse
import base64
import copy
import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional

import jsonpatch
from flask import Flask, request, jsonify

from ..config import WebhookConfig
from ..mutation import SGXMutator, ResourceExtractionError
from .decoder import PodDecoder, DecodeError, request_uid
from .manifest import WEBHOOK_PATH, create_webhook_manifest


class SGXAdmissionController:
    """Kubernetes MutatingAdmissionWebhook for SGX Pods."""

    def __init__(self,
                 config: Optional[WebhookConfig] = None,
                 mutator: Optional[SGXMutator] = None,
                 decoder: Optional[PodDecoder] = None):
        """
        Initialize the admission controller.

        Args:
            config: Webhook settings, read from the environment if omitted
            mutator: Pod mutator to apply
            decoder: AdmissionReview decoder
        """
        self.config = config or WebhookConfig.from_env()
        self.mutator = mutator or SGXMutator()
        self.decoder = None
        self.inject_decoder(decoder or PodDecoder())

        # Flask app for webhook
        self.app = Flask(__name__)
        self.app.add_url_rule('/health', 'health', self.health_check, methods=['GET'])
        self.app.add_url_rule(WEBHOOK_PATH, 'mutate', self.mutate_admission, methods=['POST'])

    def inject_decoder(self, decoder: PodDecoder) -> None:
        """Set the decoder used for every admission request."""
        self.decoder = decoder

    def health_check(self):
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    def mutate_admission(self):
        """Mutating webhook endpoint for Pods."""
        admission_review = request.get_json(silent=True)
        uid = request_uid(admission_review)

        try:
            review, pod = self.decoder.decode(admission_review)
        except DecodeError as e:
            self.app.logger.warning("Cannot decode admission request %s: %s", uid, e)
            return jsonify(self._create_errored_response(uid, 400, str(e)))

        original = copy.deepcopy(pod)

        try:
            result = self.mutator.mutate(pod)
        except ResourceExtractionError as e:
            self.app.logger.error("Malformed SGX resources in request %s: %s", uid, e)
            return jsonify(self._create_errored_response(uid, 500, str(e), review.apiVersion))

        try:
            mutated = json.loads(json.dumps(result.pod))
            patch = jsonpatch.JsonPatch.from_diff(original, mutated)
        except (TypeError, ValueError) as e:
            self.app.logger.error("Cannot encode mutated pod for request %s: %s", uid, e)
            return jsonify(self._create_errored_response(uid, 500, str(e), review.apiVersion))

        for warning in result.warnings:
            self.app.logger.info("Request %s: %s", uid, warning)

        return jsonify(self._create_patch_response(uid, patch, result.warnings, review.apiVersion))

    def _create_patch_response(self,
                               uid: str,
                               patch: jsonpatch.JsonPatch,
                               warnings: List[str],
                               api_version: str = "admission.k8s.io/v1") -> Dict[str, Any]:
        """Create an allowing admission response carrying the JSON Patch."""
        response = {
            "uid": uid,
            "allowed": True
        }

        if patch:
            response["patchType"] = "JSONPatch"
            response["patch"] = base64.b64encode(patch.to_string().encode()).decode()

        if warnings:
            response["warnings"] = warnings

        return {
            "apiVersion": api_version,
            "kind": "AdmissionReview",
            "response": response
        }

    def _create_errored_response(self,
                                 uid: Optional[str],
                                 code: int,
                                 message: str,
                                 api_version: str = "admission.k8s.io/v1") -> Dict[str, Any]:
        """Create a failed admission response leaving the Pod unmodified."""
        return {
            "apiVersion": api_version,
            "kind": "AdmissionReview",
            "response": {
                "uid": uid,
                "allowed": False,
                "status": {
                    "code": code,
                    "message": message
                }
            }
        }

    def run(self):
        """Run the admission controller webhook server."""
        config = self.config

        if config.tls_enabled:
            print(f"🔐 Running SGX admission webhook with TLS on port {config.port}")
            self.app.run(
                host=config.host,
                port=config.port,
                debug=config.debug,
                ssl_context=(config.tls_cert_path, config.tls_key_path)
            )
        else:
            print(f"⚠️  Running SGX admission webhook without TLS on port {config.port}")
            self.app.run(host=config.host, port=config.port, debug=config.debug)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the admission controller, or print its manifests."""
    parser = argparse.ArgumentParser(prog="sgx-webhook", description="SGX Pod mutating admission webhook")
    parser.add_argument("command", nargs="?", choices=["serve", "manifest"], default="serve")
    args = parser.parse_args(argv)

    config = WebhookConfig.from_env()

    if args.command == "manifest":
        print(create_webhook_manifest(config))
        return 0

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print("🚀 Starting SGX Admission Webhook")
    print(f"   Path: {WEBHOOK_PATH}")
    print(f"   Port: {config.port}")
    print(f"   Debug: {config.debug}")

    SGXAdmissionController(config=config).run()
    return 0


if __name__ == "__main__":
    exit(main())
