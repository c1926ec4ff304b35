"""
Webhook configuration read from the environment.
"""

import os
from typing import Dict, Any


class WebhookConfig:
    """Runtime settings of the SGX admission webhook."""

    def __init__(self,
                 host: str = "0.0.0.0",
                 port: int = 8443,
                 tls_cert_path: str = "/app/certs/tls.crt",
                 tls_key_path: str = "/app/certs/tls.key",
                 namespace: str = "sgx-webhook-system",
                 service_name: str = "sgx-webhook",
                 image: str = "intel/sgx-admission-webhook:latest",
                 debug: bool = False):
        self.host = host
        self.port = port
        self.tls_cert_path = tls_cert_path
        self.tls_key_path = tls_key_path
        self.namespace = namespace
        self.service_name = service_name
        self.image = image
        self.debug = debug

    @classmethod
    def from_env(cls) -> "WebhookConfig":
        """Build the configuration from environment variables."""
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8443")),
            tls_cert_path=os.getenv("TLS_CERT_PATH", "/app/certs/tls.crt"),
            tls_key_path=os.getenv("TLS_KEY_PATH", "/app/certs/tls.key"),
            namespace=os.getenv("WEBHOOK_NAMESPACE", "sgx-webhook-system"),
            service_name=os.getenv("WEBHOOK_SERVICE", "sgx-webhook"),
            image=os.getenv("WEBHOOK_IMAGE", "intel/sgx-admission-webhook:latest"),
            debug=os.getenv("DEBUG", "false").lower() == "true"
        )

    @property
    def tls_enabled(self) -> bool:
        return os.path.exists(self.tls_cert_path) and os.path.exists(self.tls_key_path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host': self.host,
            'port': self.port,
            'tls_cert_path': self.tls_cert_path,
            'tls_key_path': self.tls_key_path,
            'namespace': self.namespace,
            'service_name': self.service_name,
            'image': self.image,
            'debug': self.debug
        }
