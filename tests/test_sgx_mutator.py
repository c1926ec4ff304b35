"""
Test suite for the SGX Pod mutator.
"""

import copy

import pytest

from sgx_webhook.mutation import SGXMutator, QuotingMode, ResourceExtractionError
from sgx_webhook.mutation.constants import (
    ENCLAVE_RESOURCE,
    EPC_RESOURCE,
    PROVISION_RESOURCE,
    QUOTE_PROVIDER_ANNOTATION,
    EPC_ANNOTATION,
)


def make_container(name, epc=None, **extra_resources):
    """Create a container spec requesting the given SGX resources."""
    limits = {"cpu": "100m"}
    if epc is not None:
        limits[EPC_RESOURCE] = epc
    for resource_name, quantity in extra_resources.items():
        limits["sgx.intel.com/" + resource_name] = quantity

    return {
        "name": name,
        "image": f"example.com/{name}:latest",
        "resources": {"limits": limits}
    }


def make_pod(containers, annotations=None):
    """Create a Pod manifest."""
    pod = {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "sgx-pod", "namespace": "default"},
        "spec": {"containers": containers}
    }
    if annotations is not None:
        pod["metadata"]["annotations"] = annotations
    return pod


class TestSGXMutatorScenarios:
    """Test cases covering the quote generation deployment scenarios."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mutator = SGXMutator()

    def test_epc_without_quote_provider(self):
        """Test a single EPC user with no quote provider annotation."""
        pod = make_pod([make_container("app", epc="10")])

        result = self.mutator.mutate(pod)

        resources = pod["spec"]["containers"][0]["resources"]
        assert resources["limits"][ENCLAVE_RESOURCE] == "1"
        assert resources["requests"][ENCLAVE_RESOURCE] == "1"
        assert PROVISION_RESOURCE not in resources["limits"]
        assert PROVISION_RESOURCE not in resources["requests"]
        assert "volumes" not in pod["spec"]
        assert pod["metadata"]["annotations"][EPC_ANNOTATION] == "10"
        assert result.mode == QuotingMode.NONE
        assert result.warnings == []

    def test_aesmd_sidecar(self):
        """Test aesmd running as a sidecar next to an SGX application."""
        pod = make_pod(
            [make_container("app", epc="5"), make_container("aesmd", epc="7")],
            annotations={QUOTE_PROVIDER_ANNOTATION: "aesmd"}
        )

        result = self.mutator.mutate(pod)

        app, aesmd = pod["spec"]["containers"]
        for container in (app, aesmd):
            assert container["resources"]["limits"][ENCLAVE_RESOURCE] == "1"
            assert container["resources"]["requests"][ENCLAVE_RESOURCE] == "1"

        assert app["volumeMounts"] == [{"name": "aesmd-socket", "mountPath": "/var/run/aesmd"}]
        assert {"name": "SGX_AESM_ADDR", "value": "1"} in app["env"]
        assert aesmd["volumeMounts"] == [{"name": "aesmd-socket", "mountPath": "/var/run/aesmd"}]
        assert aesmd["env"] == [{"name": "SGX_AESM_ADDR", "value": "1"}]
        assert pod["spec"]["volumes"] == [{"name": "aesmd-socket", "emptyDir": {"medium": "Memory"}}]
        assert pod["metadata"]["annotations"][EPC_ANNOTATION] == "12"
        assert result.mode == QuotingMode.SHARED_SIDECAR

    def test_aesmd_daemonset(self):
        """Test aesmd provided by a DaemonSet on the host."""
        pod = make_pod(
            [make_container("app1", epc="5"), make_container("app2", epc="7")],
            annotations={QUOTE_PROVIDER_ANNOTATION: "aesmd"}
        )

        result = self.mutator.mutate(pod)

        assert pod["spec"]["volumes"] == [{
            "name": "aesmd-socket",
            "hostPath": {"path": "/var/run/aesmd", "type": "DirectoryOrCreate"}
        }]
        for container in pod["spec"]["containers"]:
            assert container["volumeMounts"][0]["mountPath"] == "/var/run/aesmd"
        assert pod["metadata"]["annotations"][EPC_ANNOTATION] == "12"
        assert result.mode == QuotingMode.SHARED_HOST

    def test_single_aesmd_container_uses_host_path(self):
        """Test that an aesmd container alone is not treated as a sidecar."""
        pod = make_pod([make_container("aesmd", epc="1")],
                       annotations={QUOTE_PROVIDER_ANNOTATION: "aesmd"})

        result = self.mutator.mutate(pod)

        assert result.mode == QuotingMode.SHARED_HOST
        assert "hostPath" in pod["spec"]["volumes"][0]
        # the aesmd container matches the quote provider name too
        assert pod["spec"]["containers"][0]["resources"]["limits"][PROVISION_RESOURCE] == "1"

    def test_in_process_quoting(self):
        """Test a container generating its own quotes."""
        pod = make_pod([make_container("sgx-app", epc="10")],
                       annotations={QUOTE_PROVIDER_ANNOTATION: "sgx-app"})

        result = self.mutator.mutate(pod)

        resources = pod["spec"]["containers"][0]["resources"]
        for section in ("limits", "requests"):
            assert resources[section][ENCLAVE_RESOURCE] == "1"
            assert resources[section][PROVISION_RESOURCE] == "1"
        assert "volumes" not in pod["spec"]
        assert "volumeMounts" not in pod["spec"]["containers"][0]
        assert result.mode == QuotingMode.IN_PROCESS

    def test_in_process_only_named_container_gets_provision(self):
        """Test that provision is only added to the quote provider container."""
        pod = make_pod([make_container("sgx-app", epc="10"), make_container("other", epc="10")],
                       annotations={QUOTE_PROVIDER_ANNOTATION: "sgx-app"})

        self.mutator.mutate(pod)

        sgx_app, other = pod["spec"]["containers"]
        assert PROVISION_RESOURCE in sgx_app["resources"]["limits"]
        assert PROVISION_RESOURCE not in other["resources"]["limits"]
        assert other["resources"]["limits"][ENCLAVE_RESOURCE] == "1"


class TestSGXMutatorPolicies:
    """Test cases for warnings, aggregation and idempotence."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mutator = SGXMutator()

    def test_no_epc_leaves_pod_unmodified(self):
        """Test that pods without EPC requests are not changed."""
        pod = make_pod([make_container("web"), make_container("db")],
                       annotations={QUOTE_PROVIDER_ANNOTATION: "aesmd"})
        original = copy.deepcopy(pod)

        result = self.mutator.mutate(pod)

        assert pod == original
        assert result.warnings == []
        assert result.total_epc == 0
        assert result.mode == QuotingMode.NONE

    def test_no_epc_pod_without_annotations(self):
        """Test that no empty annotations map is introduced."""
        pod = make_pod([make_container("web")])
        original = copy.deepcopy(pod)

        self.mutator.mutate(pod)

        assert pod == original

    def test_warnings_without_epc(self):
        """Test that misuse is reported even when no EPC is requested."""
        pod = make_pod([make_container("web", enclave="1")])
        original = copy.deepcopy(pod)

        result = self.mutator.mutate(pod)

        assert result.warnings == ["sgx.intel.com/enclave should not be used in Pod spec directly"]
        assert pod == original

    def test_direct_resources_are_warned_and_overwritten(self):
        """Test that author-set enclave/provision values are replaced."""
        container = make_container("sgx-app", epc="10", enclave="3", provision="2")
        container["resources"]["requests"] = {
            EPC_RESOURCE: "10",
            ENCLAVE_RESOURCE: "3",
            PROVISION_RESOURCE: "2"
        }
        pod = make_pod([container], annotations={QUOTE_PROVIDER_ANNOTATION: "sgx-app"})

        result = self.mutator.mutate(pod)

        assert result.warnings == [
            "sgx.intel.com/enclave should not be used in Pod spec directly",
            "sgx.intel.com/provision should not be used in Pod spec directly"
        ]
        resources = pod["spec"]["containers"][0]["resources"]
        for section in ("limits", "requests"):
            assert resources[section][ENCLAVE_RESOURCE] == "1"
            assert resources[section][PROVISION_RESOURCE] == "1"

    def test_provision_without_quote_provider_is_kept(self):
        """Test that a direct provision request is warned about, not dropped."""
        pod = make_pod([make_container("app", epc="1", provision="1")])

        result = self.mutator.mutate(pod)

        assert result.warnings == ["sgx.intel.com/provision should not be used in Pod spec directly"]
        assert pod["spec"]["containers"][0]["resources"]["limits"][PROVISION_RESOURCE] == "1"

    def test_warnings_follow_container_order(self):
        """Test warning order across containers."""
        pod = make_pod([
            make_container("first", provision="1"),
            make_container("second", epc="1", enclave="1")
        ])

        result = self.mutator.mutate(pod)

        assert result.warnings == [
            "sgx.intel.com/provision should not be used in Pod spec directly",
            "sgx.intel.com/enclave should not be used in Pod spec directly"
        ]

    def test_total_epc_binary_si(self):
        """Test EPC aggregation formatted as a binary-SI quantity."""
        pod = make_pod([
            make_container("a", epc="10Mi"),
            make_container("b", epc="6Mi"),
            make_container("c")
        ])

        result = self.mutator.mutate(pod)

        assert result.total_epc == 16 * 1024 * 1024
        assert result.epc_user_count == 2
        assert pod["metadata"]["annotations"][EPC_ANNOTATION] == "16Mi"

    def test_existing_annotations_are_kept(self):
        """Test that the EPC annotation overwrites only its own key."""
        pod = make_pod([make_container("app", epc="1Ki")],
                       annotations={"team": "enclaves", EPC_ANNOTATION: "stale"})

        self.mutator.mutate(pod)

        assert pod["metadata"]["annotations"] == {"team": "enclaves", EPC_ANNOTATION: "1Ki"}

    def test_volume_and_mount_injection_is_idempotent(self):
        """Test that mutating twice adds volumes and mounts only once."""
        pod = make_pod(
            [make_container("app", epc="5"), make_container("aesmd", epc="7")],
            annotations={QUOTE_PROVIDER_ANNOTATION: "aesmd"}
        )

        self.mutator.mutate(pod)
        once = copy.deepcopy(pod)
        self.mutator.mutate(pod)

        assert pod["spec"]["volumes"] == once["spec"]["volumes"]
        assert pod["metadata"]["annotations"] == once["metadata"]["annotations"]
        for before, after in zip(once["spec"]["containers"], pod["spec"]["containers"]):
            assert after["volumeMounts"] == before["volumeMounts"]
            assert after["resources"] == before["resources"]

    def test_env_injection_repeats_on_second_pass(self):
        """Test the current SGX_AESM_ADDR behaviour on re-admission."""
        pod = make_pod([make_container("app", epc="5")],
                       annotations={QUOTE_PROVIDER_ANNOTATION: "aesmd"})

        self.mutator.mutate(pod)
        self.mutator.mutate(pod)

        env = pod["spec"]["containers"][0]["env"]
        assert env == [{"name": "SGX_AESM_ADDR", "value": "1"}] * 2

    def test_existing_volume_is_not_replaced(self):
        """Test that a user-provided aesmd-socket volume is kept."""
        user_volume = {"name": "aesmd-socket", "hostPath": {"path": "/custom/aesmd"}}
        pod = make_pod([make_container("app", epc="5")],
                       annotations={QUOTE_PROVIDER_ANNOTATION: "aesmd"})
        pod["spec"]["volumes"] = [user_volume]

        self.mutator.mutate(pod)

        assert pod["spec"]["volumes"] == [user_volume]

    def test_existing_mount_path_is_not_duplicated(self):
        """Test that a mount at the aesmd socket directory is kept as is."""
        container = make_container("app", epc="5")
        container["volumeMounts"] = [{"name": "my-socket", "mountPath": "/var/run/aesmd"}]
        pod = make_pod([container], annotations={QUOTE_PROVIDER_ANNOTATION: "aesmd"})

        self.mutator.mutate(pod)

        assert pod["spec"]["containers"][0]["volumeMounts"] == [
            {"name": "my-socket", "mountPath": "/var/run/aesmd"}
        ]

    def test_malformed_resource_aborts_mutation(self):
        """Test that an SGX request without a limit is rejected."""
        container = {"name": "app", "resources": {"requests": {EPC_RESOURCE: "10"}}}
        pod = make_pod([make_container("ok", epc="1"), container])

        with pytest.raises(ResourceExtractionError):
            self.mutator.mutate(pod)

    def test_result_to_dict(self):
        """Test result serialization."""
        pod = make_pod([make_container("app", epc="4")])

        result_dict = self.mutator.mutate(pod).to_dict()

        assert result_dict["mode"] == "none"
        assert result_dict["total_epc"] == 4
        assert result_dict["epc_user_count"] == 1
        assert result_dict["pod"] is pod
