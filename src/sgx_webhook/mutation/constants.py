"""
SGX resource, annotation and aesmd names shared by the mutation engine.
"""

NAMESPACE = "sgx.intel.com"

ENCLAVE_RESOURCE = NAMESPACE + "/enclave"
EPC_RESOURCE = NAMESPACE + "/epc"
PROVISION_RESOURCE = NAMESPACE + "/provision"

QUOTE_PROVIDER_ANNOTATION = NAMESPACE + "/quote-provider"
EPC_ANNOTATION = NAMESPACE + "/epc"

AESMD_QUOTE_PROVIDER = "aesmd"
AESMD_SOCKET_DIRECTORY = "/var/run/aesmd"
AESMD_SOCKET_VOLUME = "aesmd-socket"
AESMD_ADDR_ENV = "SGX_AESM_ADDR"
AESMD_ADDR_VALUE = "1"
