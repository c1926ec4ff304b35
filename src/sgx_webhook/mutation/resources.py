"""
Container Resource Extraction

Collects the extended resources a container requests under a given resource
namespace (e.g. ``sgx.intel.com``) and checks that requests match limits.
"""

import math
from decimal import Decimal
from typing import Dict, Any

from kubernetes.utils import parse_quantity


class ResourceExtractionError(ValueError):
    """Raised when a container carries a malformed extended resource entry."""


def _parse(resource_name: str, quantity: Any) -> Decimal:
    try:
        return parse_quantity(quantity)
    except ValueError as e:
        raise ResourceExtractionError(f'invalid quantity for "{resource_name}": {e}') from e


def get_requested_resources(container: Dict[str, Any], namespace: str) -> Dict[str, int]:
    """
    Return every resource limit under ``namespace`` found on the container.

    Extended resources cannot be overcommitted, so any request under the
    namespace must come with an equal limit.

    Args:
        container: Container spec as found in ``pod["spec"]["containers"]``
        namespace: Resource name prefix, matched case-insensitively

    Returns:
        Mapping of lowercased resource name to its quantity, rounded up
        to an integer

    Raises:
        ResourceExtractionError: On a missing limit, a request differing from
            its limit, or an unparsable quantity
    """
    resources = container.get("resources") or {}
    requests = resources.get("requests") or {}
    limits = resources.get("limits") or {}
    prefix = namespace.lower()

    # A container may have requests without limits, so check requests first.
    for resource_name, requested in requests.items():
        rname = resource_name.lower()
        if not rname.startswith(prefix):
            continue

        if resource_name not in limits:
            raise ResourceExtractionError(f'limits for "{rname}" are not set')

        if _parse(rname, limits[resource_name]) != _parse(rname, requested):
            raise ResourceExtractionError(f'resource request "{rname}" must equal to its limit')

    requested_resources = {}
    for resource_name, limit in limits.items():
        rname = resource_name.lower()
        if not rname.startswith(prefix):
            continue
        requested_resources[rname] = int(math.ceil(_parse(rname, limit)))

    return requested_resources
