"""
Deployment manifests for the SGX admission webhook.
"""

from typing import Dict, List, Any, Optional

import yaml

from ..config import WebhookConfig

WEBHOOK_PATH = "/pods-sgx"
WEBHOOK_NAME = "sgx.mutator.webhooks.intel.com"


def create_webhook_configuration(config: WebhookConfig) -> Dict[str, Any]:
    """
    MutatingWebhookConfiguration registering the Pod mutator.

    The webhook fails open: if it cannot be reached the Pod is admitted
    unmodified.
    """
    return {
        "apiVersion": "admissionregistration.k8s.io/v1",
        "kind": "MutatingWebhookConfiguration",
        "metadata": {"name": "sgx-mutating-webhook-configuration"},
        "webhooks": [{
            "name": WEBHOOK_NAME,
            "admissionReviewVersions": ["v1"],
            "sideEffects": "None",
            "failurePolicy": "Ignore",
            "clientConfig": {
                "service": {
                    "name": config.service_name,
                    "namespace": config.namespace,
                    "path": WEBHOOK_PATH
                }
            },
            "rules": [{
                "operations": ["CREATE", "UPDATE"],
                "apiGroups": [""],
                "apiVersions": ["v1"],
                "resources": ["pods"]
            }]
        }]
    }


def create_deployment(config: WebhookConfig) -> List[Dict[str, Any]]:
    """Deployment and Service running the webhook server."""
    labels = {"app": config.service_name}

    deployment = {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": config.service_name, "namespace": config.namespace, "labels": labels},
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": labels},
            "template": {
                "metadata": {"labels": labels},
                "spec": {
                    "containers": [{
                        "name": "webhook",
                        "image": config.image,
                        "ports": [{"containerPort": config.port, "name": "webhook-api"}],
                        "env": [
                            {"name": "PORT", "value": str(config.port)},
                            {"name": "TLS_CERT_PATH", "value": config.tls_cert_path},
                            {"name": "TLS_KEY_PATH", "value": config.tls_key_path}
                        ],
                        "volumeMounts": [{
                            "name": "webhook-certs",
                            "mountPath": _cert_dir(config),
                            "readOnly": True
                        }],
                        "readinessProbe": {
                            "httpGet": {"path": "/health", "port": config.port, "scheme": "HTTPS"}
                        },
                        "resources": {
                            "limits": {"cpu": "100m", "memory": "64Mi"},
                            "requests": {"cpu": "50m", "memory": "32Mi"}
                        }
                    }],
                    "volumes": [{
                        "name": "webhook-certs",
                        "secret": {"secretName": f"{config.service_name}-certs"}
                    }]
                }
            }
        }
    }

    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": config.service_name, "namespace": config.namespace},
        "spec": {
            "selector": labels,
            "ports": [{"protocol": "TCP", "port": 443, "targetPort": config.port, "name": "webhook-api"}]
        }
    }

    return [deployment, service]


def _cert_dir(config: WebhookConfig) -> str:
    return config.tls_cert_path.rsplit("/", 1)[0] or "/"


def create_webhook_manifest(config: Optional[WebhookConfig] = None) -> str:
    """Render all webhook manifests as a multi-document YAML string."""
    config = config or WebhookConfig()
    documents = create_deployment(config) + [create_webhook_configuration(config)]
    return yaml.safe_dump_all(documents, sort_keys=False)
