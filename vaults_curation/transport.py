"""Blockchain transport: reads, dry-runs and signed transactions over web3."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from web3 import Web3

from vaults_curation.constants import DEFAULT_RECEIPT_TIMEOUT, DEFAULT_TIMEOUT
from vaults_curation.errors import PreconditionError, TransactionRevertedError
from vaults_curation.formatters import normalize_hex_str
from vaults_curation.models import TxResult

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount  # pragma: no cover


class Web3Transport:
    """Thin wrapper over a Web3 connection and an optional signing account.

    Reads never need an account. Dry-runs use the account address as `from` when
    one is configured so that access checks behave as for the real transaction.
    """

    def __init__(
        self,
        w3: Web3,
        account: "LocalAccount | None" = None,
        *,
        receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT,
    ):
        self.w3 = w3
        self.account = account
        self.receipt_timeout = receipt_timeout

    @classmethod
    def from_rpc_url(
        cls,
        rpc_url: str,
        private_key: str | None = None,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT,
    ) -> "Web3Transport":
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        account = w3.eth.account.from_key(private_key) if private_key else None
        return cls(w3, account, receipt_timeout=receipt_timeout)

    @property
    def sender(self) -> str | None:
        return self.account.address if self.account is not None else None

    def _bound(self, address: str, abi: Sequence[dict], fn: str, args: Sequence[Any]):
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=list(abi))
        return contract.get_function_by_name(fn)(*args)

    def call(self, address: str, abi: Sequence[dict], fn: str, args: Sequence[Any] = ()) -> Any:
        """Read-only call against the latest block."""
        return self._bound(address, abi, fn, args).call()

    def simulate(self, address: str, abi: Sequence[dict], fn: str, args: Sequence[Any] = ()) -> Any:
        """Execute a state-changing function as a call, returning its would-be result."""
        tx: dict[str, Any] = {"from": self.sender} if self.sender else {}
        return self._bound(address, abi, fn, args).call(tx)

    def send(
        self,
        address: str,
        abi: Sequence[dict],
        fn: str,
        args: Sequence[Any] = (),
        *,
        wait: bool = True,
    ) -> TxResult:
        """Sign and broadcast a transaction; optionally wait for its receipt."""
        if self.account is None:
            raise PreconditionError(f"{fn}: a signing account (PRIVATE_KEY) is required to send transactions")
        nonce = self.w3.eth.get_transaction_count(self.account.address, "pending")
        tx = self._bound(address, abi, fn, args).build_transaction({"from": self.account.address, "nonce": nonce})
        signed = self.account.sign_transaction(tx)
        tx_hash = normalize_hex_str(self.w3.eth.send_raw_transaction(signed.raw_transaction))
        if not wait:
            return TxResult(tx_hash=tx_hash)

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        block_number = int(receipt["blockNumber"])
        status = int(receipt["status"])
        if status != 1:
            raise TransactionRevertedError(tx_hash, block_number)
        return TxResult(tx_hash=tx_hash, block_number=block_number, status=status, receipt=receipt)

    def block_timestamp(self) -> int:
        return int(self.w3.eth.get_block("latest")["timestamp"])

    def chain_id(self) -> int:
        return int(self.w3.eth.chain_id)
