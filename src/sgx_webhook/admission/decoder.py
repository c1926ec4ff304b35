"""
AdmissionReview Decoding

Turns the JSON body posted by the API server into an admission request and
the Pod it carries.
"""

import copy
from typing import Dict, Any, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError


class DecodeError(ValueError):
    """Raised when an admission request cannot be decoded into a Pod."""


class AdmissionRequest(BaseModel):
    uid: str
    kind: Dict[str, str] = Field(default_factory=dict)
    operation: str = ""
    namespace: Optional[str] = None
    name: Optional[str] = None
    pod_object: Optional[Dict[str, Any]] = Field(default=None, alias="object")


class AdmissionReview(BaseModel):
    apiVersion: str = "admission.k8s.io/v1"
    kind: str = "AdmissionReview"
    request: AdmissionRequest


class PodDecoder:
    """Decodes AdmissionReview payloads carrying Pods."""

    def decode(self, payload: Any) -> Tuple[AdmissionReview, Dict[str, Any]]:
        """
        Decode an AdmissionReview payload.

        Args:
            payload: Parsed JSON body of the webhook call

        Returns:
            Tuple of the review and a private copy of the Pod it carries

        Raises:
            DecodeError: If the payload is not an AdmissionReview with a Pod
        """
        if not isinstance(payload, dict):
            raise DecodeError("request body is not an AdmissionReview object")

        try:
            review = AdmissionReview.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(f"invalid AdmissionReview: {e}") from e

        pod = review.request.pod_object
        if pod is None:
            raise DecodeError("admission request carries no object")

        kind = review.request.kind.get("kind") or pod.get("kind")
        if kind and kind != "Pod":
            raise DecodeError(f"expected a Pod, got {kind}")

        return review, copy.deepcopy(pod)


def request_uid(payload: Any) -> Optional[str]:
    """Best-effort UID of a raw AdmissionReview payload."""
    if isinstance(payload, dict) and isinstance(payload.get("request"), dict):
        return payload["request"].get("uid")
    return None
