"""
Tests for the bundler / paymaster JSON-RPC client.
"""
import pytest
import requests

from splits_sdk.contracts import ENTRY_POINT_V07, ENTRY_POINT_V08
from splits_sdk.exceptions import BundlerError, ConfigurationError, ResponseDecodingError
from splits_sdk.sponsor.bundler import BundlerClient
from splits_sdk.sponsor.user_operation import UserOperationBuilder
from tests.test_helpers import BUNDLER_URL, TEST_CHAIN_ID, TEST_USER_OP_HASH, RpcError

SENDER = "0xfcad0b19bb29d4674531d6f115237e16afce377c"


@pytest.fixture
def client():
    return BundlerClient(BUNDLER_URL)


@pytest.fixture
def operation():
    return UserOperationBuilder(SENDER, TEST_CHAIN_ID).build(call_data="0x1234", nonce=0)


def test_insecure_url_rejected():
    with pytest.raises(ConfigurationError, match="https"):
        BundlerClient("http://bundler.example.com/rpc")


def test_localhost_http_allowed():
    assert BundlerClient("http://localhost:4337").url == "http://localhost:4337"


def test_gas_price_tiers(client, bundler):
    tiers = client.get_gas_price()

    assert list(tiers.tiers) == ["slow", "standard", "fast"]
    assert tiers.select_tier().max_fee_per_gas == 1_000_000_000
    assert bundler.calls == [("pimlico_getUserOperationGasPrice", [])]


def test_gas_price_falls_back_to_first_tier(client, bundler):
    """Without a standard tier the first tier in response order is used"""
    bundler.responses["pimlico_getUserOperationGasPrice"] = {
        "fast": {"maxFeePerGas": "0x64", "maxPriorityFeePerGas": "0xa"},
        "slow": {"maxFeePerGas": "0x1", "maxPriorityFeePerGas": "0x1"},
    }
    assert client.get_gas_price().select_tier().max_fee_per_gas == 100


def test_empty_gas_price_is_decoding_error(client, bundler):
    bundler.responses["pimlico_getUserOperationGasPrice"] = {}
    with pytest.raises(ResponseDecodingError):
        client.get_gas_price()


def test_estimate_sends_operation_and_entry_point(client, bundler, operation):
    estimate = client.estimate_user_operation_gas(operation)

    assert estimate.call_gas_limit == 0x10000
    assert estimate.verification_gas_limit == 0x20000
    assert estimate.pre_verification_gas == 0xc350
    assert estimate.paymaster_verification_gas_limit == 0x8000

    [params] = bundler.params("eth_estimateUserOperationGas")
    assert params == [operation.to_rpc(), ENTRY_POINT_V08]


def test_estimate_for_v07_entry_point(client, bundler, operation):
    client.estimate_user_operation_gas(operation, "0.7")
    [params] = bundler.params("eth_estimateUserOperationGas")
    assert params[1] == ENTRY_POINT_V07


def test_malformed_estimate_is_decoding_error(client, bundler, operation):
    """A response missing required fields never reaches the operation"""
    bundler.responses["eth_estimateUserOperationGas"] = {"verificationGasLimit": "0x1"}

    with pytest.raises(ResponseDecodingError) as exc_info:
        client.estimate_user_operation_gas(operation)
    assert exc_info.value.method == "eth_estimateUserOperationGas"


def test_sponsor_with_policy(client, bundler, operation):
    sponsorship = client.sponsor_user_operation(operation, sponsorship_policy_id="sp_test")

    assert sponsorship.paymaster_data == "0xabcdef"
    assert sponsorship.paymaster_verification_gas_limit == 0x8000
    assert sponsorship.call_gas_limit == 0x11000

    [params] = bundler.params("pm_sponsorUserOperation")
    assert params[2] == {"sponsorshipPolicyId": "sp_test"}


def test_sponsor_without_policy(client, bundler, operation):
    client.sponsor_user_operation(operation)
    [params] = bundler.params("pm_sponsorUserOperation")
    assert len(params) == 2


def test_sponsor_without_paymaster_is_decoding_error(client, bundler, operation):
    bundler.responses["pm_sponsorUserOperation"] = {"paymasterData": "0x"}
    with pytest.raises(ResponseDecodingError):
        client.sponsor_user_operation(operation)


def test_validate_sponsorship_policies(client, bundler, operation):
    valid = client.validate_sponsorship_policies(operation, ["sp_test"])

    assert valid == [{"sponsorshipPolicyId": "sp_test", "data": {"name": "test"}}]
    [params] = bundler.params("pm_validateSponsorshipPolicies")
    assert params[2] == ["sp_test"]


def test_send_returns_hash(client, bundler, operation):
    assert client.send_user_operation(operation) == TEST_USER_OP_HASH


def test_send_rejects_invalid_hash(client, bundler, operation):
    bundler.responses["eth_sendUserOperation"] = "not-a-hash"
    with pytest.raises(BundlerError, match="invalid user operation hash"):
        client.send_user_operation(operation)


def test_receipt_absent_returns_none(client, bundler):
    bundler.responses["eth_getUserOperationReceipt"] = None
    assert client.get_user_operation_receipt(TEST_USER_OP_HASH) is None


def test_receipt_flattens_transaction(client, bundler):
    receipt = client.get_user_operation_receipt(TEST_USER_OP_HASH)

    assert receipt.user_op_hash == TEST_USER_OP_HASH
    assert receipt.transaction_hash == "0x" + "cd" * 32
    assert receipt.block_number == 16
    assert receipt.success is True
    assert receipt.raw["actualGasUsed"] == "0x30d40"


def test_rpc_error_preserves_message(client, bundler, operation):
    """Upstream error messages are surfaced verbatim with code and data"""
    bundler.responses["eth_sendUserOperation"] = RpcError(
        "AA21 didn't pay prefund", code=-32500, data={"reason": "prefund"}
    )

    with pytest.raises(BundlerError) as exc_info:
        client.send_user_operation(operation)

    assert str(exc_info.value) == "AA21 didn't pay prefund"
    assert exc_info.value.code == -32500
    assert exc_info.value.data == {"reason": "prefund"}
    assert exc_info.value.method == "eth_sendUserOperation"


def test_non_json_response(client, requests_mock):
    requests_mock.post(BUNDLER_URL, text="<html>Bad Gateway</html>", status_code=502)

    with pytest.raises(BundlerError, match="HTTP 502") as exc_info:
        client.get_gas_price()
    assert exc_info.value.code == 502


def test_http_error_with_json_body(client, requests_mock):
    requests_mock.post(BUNDLER_URL, json={"jsonrpc": "2.0", "id": 1}, status_code=429)
    with pytest.raises(BundlerError, match="HTTP 429"):
        client.get_gas_price()


def test_missing_result(client, requests_mock):
    requests_mock.post(BUNDLER_URL, json={"jsonrpc": "2.0", "id": 1})
    with pytest.raises(BundlerError, match="no result"):
        client.get_gas_price()


def test_connection_error(client, requests_mock):
    requests_mock.post(BUNDLER_URL, exc=requests.ConnectionError("connection refused"))
    with pytest.raises(BundlerError, match="request failed"):
        client.get_gas_price()


def test_request_ids_increase(client, bundler):
    client.get_gas_price()
    client.get_gas_price()

    ids = [request.json()["id"] for request in bundler.route.request_history]
    assert ids == [1, 2]
