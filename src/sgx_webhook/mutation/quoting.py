"""
Quote Generation Modes

A Pod using SGX picks how its enclaves get quotes through the
``sgx.intel.com/quote-provider`` annotation:

- in-process: the annotation names a container which ships its own quote
  provider library. That container needs ``sgx.intel.com/provision``.
- aesmd: the annotation is ``aesmd`` and containers talk to Intel aesmd over
  ``/var/run/aesmd/aesm.sock``. aesmd runs either as a sidecar container
  named ``aesmd`` or as a host-wide DaemonSet.

Without the annotation containers cannot generate quotes for their enclaves.
"""

from enum import Enum
from typing import Dict, List, Any, Optional

from .constants import AESMD_QUOTE_PROVIDER, AESMD_SOCKET_DIRECTORY, AESMD_SOCKET_VOLUME


class QuotingMode(Enum):
    """Quote generation topology of a Pod."""

    NONE = "none"
    IN_PROCESS = "in-process"
    SHARED_SIDECAR = "aesmd-sidecar"
    SHARED_HOST = "aesmd-daemonset"

    @property
    def uses_aesmd(self) -> bool:
        return self in (QuotingMode.SHARED_SIDECAR, QuotingMode.SHARED_HOST)


def select_quoting_mode(quote_provider: Optional[str],
                        epc_user_count: int,
                        aesmd_present: bool) -> QuotingMode:
    """
    Decide the quote generation mode of a Pod.

    Args:
        quote_provider: Value of the quote-provider annotation, if any
        epc_user_count: Number of containers requesting SGX EPC
        aesmd_present: Whether a container named ``aesmd`` requests EPC

    Returns:
        The selected QuotingMode
    """
    if epc_user_count == 0 or not quote_provider:
        return QuotingMode.NONE

    if quote_provider != AESMD_QUOTE_PROVIDER:
        return QuotingMode.IN_PROCESS

    # aesmd sidecar: the pod has a container named aesmd and >=1 _other_
    # containers requesting SGX resources.
    if aesmd_present and epc_user_count >= 2:
        return QuotingMode.SHARED_SIDECAR

    return QuotingMode.SHARED_HOST


def create_aesmd_volume(mode: QuotingMode) -> Optional[Dict[str, Any]]:
    """
    Build the volume backing the aesmd socket directory for ``mode``.

    Sidecar deployments share the socket through an in-memory emptyDir;
    DaemonSet deployments reach the host socket directory through a hostPath.
    """
    if mode == QuotingMode.SHARED_SIDECAR:
        return {
            "name": AESMD_SOCKET_VOLUME,
            "emptyDir": {"medium": "Memory"},
        }

    if mode == QuotingMode.SHARED_HOST:
        return {
            "name": AESMD_SOCKET_VOLUME,
            "hostPath": {
                "path": AESMD_SOCKET_DIRECTORY,
                "type": "DirectoryOrCreate",
            },
        }

    return None


def volume_exists(name: str, volumes: List[Dict[str, Any]]) -> bool:
    return any(volume.get("name") == name for volume in volumes)


def volume_mount_exists(path: str, container: Dict[str, Any]) -> bool:
    return any(mount.get("mountPath") == path for mount in container.get("volumeMounts") or [])
