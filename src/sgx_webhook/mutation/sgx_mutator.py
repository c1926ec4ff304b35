"""
SGX Pod Mutator

Rewrites Pods requesting SGX EPC memory so that they also request the
enclave (and, for in-process quoting, provision) device handles, carry the
aesmd socket wiring when they use a shared aesmd, and are annotated with
their total EPC usage.
"""

import logging
from typing import Dict, List, Any

from .constants import (
    NAMESPACE,
    ENCLAVE_RESOURCE,
    EPC_RESOURCE,
    PROVISION_RESOURCE,
    QUOTE_PROVIDER_ANNOTATION,
    EPC_ANNOTATION,
    AESMD_QUOTE_PROVIDER,
    AESMD_SOCKET_DIRECTORY,
    AESMD_SOCKET_VOLUME,
    AESMD_ADDR_ENV,
    AESMD_ADDR_VALUE,
)
from .quantity import format_binary_si
from .quoting import (
    QuotingMode,
    select_quoting_mode,
    create_aesmd_volume,
    volume_exists,
    volume_mount_exists,
)
from .resources import get_requested_resources

logger = logging.getLogger(__name__)


def _ensure(obj: Dict[str, Any], key: str, default: Any) -> Any:
    if obj.get(key) is None:
        obj[key] = default
    return obj[key]


def warn_wrong_resources(resources: Dict[str, int]) -> List[str]:
    """Warnings for engine-managed resources found in a container spec."""
    warnings = []

    if ENCLAVE_RESOURCE in resources:
        warnings.append(f"{ENCLAVE_RESOURCE} should not be used in Pod spec directly")

    if PROVISION_RESOURCE in resources:
        warnings.append(f"{PROVISION_RESOURCE} should not be used in Pod spec directly")

    return warnings


class MutationResult:
    """Outcome of mutating a single Pod."""

    def __init__(self,
                 pod: Dict[str, Any],
                 warnings: List[str],
                 mode: QuotingMode,
                 epc_user_count: int,
                 total_epc: int):
        self.pod = pod
        self.warnings = warnings
        self.mode = mode
        self.epc_user_count = epc_user_count
        self.total_epc = total_epc

    def to_dict(self) -> Dict[str, Any]:
        """Convert mutation result to dictionary format."""
        return {
            'pod': self.pod,
            'warnings': self.warnings,
            'mode': self.mode.value,
            'epc_user_count': self.epc_user_count,
            'total_epc': self.total_epc
        }


class SGXMutator:
    """Mutates Pods requesting SGX resources."""

    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace

    def mutate(self, pod: Dict[str, Any]) -> MutationResult:
        """
        Mutate a Pod in place.

        Args:
            pod: Pod manifest as a dictionary

        Returns:
            MutationResult holding the (same, mutated) pod and the warnings
            collected in container order

        Raises:
            ResourceExtractionError: If a container has a malformed SGX
                resource entry. The pod must then be left unpatched.
        """
        metadata = pod.get("metadata") or {}
        spec = pod.get("spec") or {}
        containers = spec.get("containers") or []
        quote_provider = (metadata.get("annotations") or {}).get(QUOTE_PROVIDER_ANNOTATION)

        warnings = []
        epc_users = []
        total_epc = 0

        for idx, container in enumerate(containers):
            requested = get_requested_resources(container, self.namespace)
            warnings.extend(warn_wrong_resources(requested))

            # the container has no sgx.intel.com/epc
            if EPC_RESOURCE not in requested:
                continue

            total_epc += requested[EPC_RESOURCE]
            epc_users.append(idx)

        aesmd_present = any(containers[idx].get("name") == AESMD_QUOTE_PROVIDER for idx in epc_users)
        mode = select_quoting_mode(quote_provider, len(epc_users), aesmd_present)

        for idx in epc_users:
            container = containers[idx]
            self._add_sgx_resources(container, bool(quote_provider) and quote_provider == container.get("name"))

            if mode.uses_aesmd:
                self._add_aesmd_wiring(container)

            containers[idx] = container

        volume = create_aesmd_volume(mode)
        if volume is not None and not volume_exists(volume["name"], spec.get("volumes") or []):
            _ensure(spec, "volumes", []).append(volume)

        if total_epc != 0:
            annotations = _ensure(_ensure(pod, "metadata", {}), "annotations", {})
            annotations[EPC_ANNOTATION] = format_binary_si(total_epc)

        logger.debug("pod %s: mode=%s epc_users=%d total_epc=%d warnings=%d",
                     metadata.get("name") or metadata.get("generateName"),
                     mode.value, len(epc_users), total_epc, len(warnings))

        return MutationResult(pod, warnings, mode, len(epc_users), total_epc)

    def _add_sgx_resources(self, container: Dict[str, Any], provision: bool) -> None:
        resources = _ensure(container, "resources", {})
        limits = _ensure(resources, "limits", {})
        requests = _ensure(resources, "requests", {})

        if provision:
            limits[PROVISION_RESOURCE] = "1"
            requests[PROVISION_RESOURCE] = "1"

        # Any enclave use needs the enclave handle, whatever the quoting mode.
        limits[ENCLAVE_RESOURCE] = "1"
        requests[ENCLAVE_RESOURCE] = "1"

    def _add_aesmd_wiring(self, container: Dict[str, Any]) -> None:
        if not volume_mount_exists(AESMD_SOCKET_DIRECTORY, container):
            _ensure(container, "volumeMounts", []).append({
                "name": AESMD_SOCKET_VOLUME,
                "mountPath": AESMD_SOCKET_DIRECTORY,
            })

        # This sets SGX_AESM_ADDR for aesmd itself too but it's harmless.
        # TODO: skip the append when SGX_AESM_ADDR is already set, so that
        # re-admitting an updated Pod does not duplicate the entry.
        _ensure(container, "env", []).append({
            "name": AESMD_ADDR_ENV,
            "value": AESMD_ADDR_VALUE,
        })
