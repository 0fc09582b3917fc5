"""Safe call execution: every state change is dry-run before it is committed."""

from collections.abc import Sequence
from typing import Any

from vaults_curation.errors import (
    ContractCallError,
    PreconditionError,
    decode_contract_error,
    more_specific,
)
from vaults_curation.models import TxResult


class CallExecutor:
    """Runs reads, dry-runs and transactions through a transport, decoding failures.

    The transport is anything with `call`, `simulate`, `send`, `block_timestamp`
    and `sender` (see `Web3Transport`).
    """

    def __init__(self, transport):
        self.transport = transport

    @property
    def sender(self) -> str | None:
        return self.transport.sender

    def block_timestamp(self) -> int:
        return self.transport.block_timestamp()

    def read(self, target: str, abi: Sequence[dict], fn: str, *args: Any) -> Any:
        try:
            return self.transport.call(target, abi, fn, args)
        except PreconditionError:
            raise
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise ContractCallError(fn, target, decode_contract_error(ex)) from ex

    def dry_run(self, target: str, abi: Sequence[dict], fn: str, *args: Any) -> Any:
        """Simulate `fn(*args)` and return its result without committing anything."""
        try:
            return self.transport.simulate(target, abi, fn, args)
        except PreconditionError:
            raise
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise ContractCallError(fn, target, decode_contract_error(ex)) from ex

    def transact(self, target: str, abi: Sequence[dict], fn: str, *args: Any, wait: bool = True) -> TxResult:
        """Dry-run then send `fn(*args)`.

        When the dry-run fails the transaction is still attempted once: some nodes
        strip revert data from eth_call, and the committed call may surface a
        better error (or succeed). The more informative of the two errors wins.
        """
        try:
            self.transport.simulate(target, abi, fn, args)
        except PreconditionError:
            raise
        except Exception as sim_ex:  # pylint: disable=broad-exception-caught
            dry_error = decode_contract_error(sim_ex)
            try:
                return self.transport.send(target, abi, fn, args, wait=wait)
            except PreconditionError:
                raise
            except Exception as send_ex:  # pylint: disable=broad-exception-caught
                committed_error = decode_contract_error(send_ex)
                best = more_specific(committed_error, dry_error)
                cause = send_ex if best is committed_error else sim_ex
                raise ContractCallError(fn, target, best) from cause

        try:
            return self.transport.send(target, abi, fn, args, wait=wait)
        except PreconditionError:
            raise
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise ContractCallError(fn, target, decode_contract_error(ex)) from ex
