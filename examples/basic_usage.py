#!/usr/bin/env python3
"""
Basic Usage Example for the SGX Admission Webhook

Runs the Pod mutator over the common quote generation deployments and
prints what gets added to each Pod.
"""

import json
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sgx_webhook.mutation import SGXMutator


def container(name, epc=None):
    limits = {"sgx.intel.com/epc": epc} if epc else {}
    return {"name": name, "image": f"example.com/{name}:latest", "resources": {"limits": limits}}


def pod(name, containers, quote_provider=None):
    annotations = {"sgx.intel.com/quote-provider": quote_provider} if quote_provider else {}
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "annotations": annotations},
        "spec": {"containers": containers}
    }


SCENARIOS = [
    ("No quote generation", pod("plain-sgx", [container("app", "10Mi")])),
    ("aesmd sidecar", pod("aesmd-sidecar",
                          [container("app", "5Mi"), container("aesmd", "7Mi")],
                          quote_provider="aesmd")),
    ("aesmd DaemonSet", pod("aesmd-daemonset",
                            [container("app1", "5Mi"), container("app2", "7Mi")],
                            quote_provider="aesmd")),
    ("In-process quoting", pod("in-process", [container("sgx-app", "10Mi")],
                               quote_provider="sgx-app")),
]


def demonstrate_scenario(mutator, title, manifest):
    """Mutate one Pod and print the result."""
    print(f"\n🔧 {title}")
    print("-" * 50)

    result = mutator.mutate(manifest)

    print(f"   Quoting mode: {result.mode.value}")
    print(f"   EPC users: {result.epc_user_count}")
    print(f"   EPC annotation: {manifest['metadata']['annotations'].get('sgx.intel.com/epc')}")

    for c in manifest["spec"]["containers"]:
        print(f"   📦 {c['name']}: limits={json.dumps(c['resources']['limits'])}")
        if c.get("volumeMounts"):
            print(f"      mounts={json.dumps(c['volumeMounts'])}")

    for volume in manifest["spec"].get("volumes", []):
        print(f"   💾 volume: {json.dumps(volume)}")

    for warning in result.warnings:
        print(f"   ⚠️  {warning}")


def main():
    """Run the demonstration."""
    print("🚀 SGX Admission Webhook - Basic Usage Demo")
    print("=" * 70)

    if not os.path.exists("src/sgx_webhook"):
        print("❌ Error: Please run this script from the project root directory")
        return 1

    mutator = SGXMutator()
    for title, manifest in SCENARIOS:
        demonstrate_scenario(mutator, title, manifest)

    print("\n✨ Demo completed successfully!")
    return 0


if __name__ == "__main__":
    exit(main())
