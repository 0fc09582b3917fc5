"""Error taxonomy and decoding of failed contract calls."""

from dataclasses import dataclass

from web3.exceptions import ContractLogicError

from vaults_curation.constants import ERROR_SIGNATURES, TIMELOCK_NOT_EXPIRED
from vaults_curation.encoding import selector_of_signature
from vaults_curation.formatters import normalize_hex_str

KIND_REASON = "reason"
KIND_CUSTOM = "custom"
KIND_RAW = "raw"
KIND_UNKNOWN = "unknown"

# Higher is more informative.
_KIND_RANK = {KIND_UNKNOWN: 0, KIND_RAW: 1, KIND_CUSTOM: 2, KIND_REASON: 3}

# 4-byte selector (0x-prefixed, lowercase) -> custom error name
ERROR_NAMES: dict[str, str] = {
    normalize_hex_str(selector_of_signature(sig)).lower(): sig.split("(", 1)[0] for sig in ERROR_SIGNATURES
}


class VaultsError(Exception):
    """Base class for every error raised by this package."""


class PreconditionError(VaultsError, ValueError):
    """The caller asked for something that cannot work; nothing was sent on-chain."""


class DelayNotZeroError(PreconditionError):
    def __init__(self, function: str, delay: int):
        self.function = function
        self.delay = delay
        super().__init__(f"{function} has a {delay}s timelock; instant execution requires a zero delay")


@dataclass(frozen=True)
class DecodedError:
    """Best-effort decoding of a contract failure."""

    kind: str
    detail: str
    selector: str | None = None
    data: str | None = None
    error_name: str | None = None

    @property
    def rank(self) -> int:
        return _KIND_RANK.get(self.kind, 0)


class ContractCallError(VaultsError, RuntimeError):
    """A contract read, simulation or transaction failed."""

    def __init__(self, operation: str, target: str, decoded: DecodedError):
        self.operation = operation
        self.target = target
        self.decoded = decoded
        super().__init__(f"{operation} failed on {target}: {decoded.detail}")

    @property
    def error_name(self) -> str | None:
        return self.decoded.error_name


class TimelockNotExpiredError(ContractCallError):
    """A timelocked call was attempted before its executable-at time."""

    def __init__(
        self,
        operation: str,
        target: str,
        decoded: DecodedError | None = None,
        *,
        executable_at: int | None = None,
        now: int | None = None,
    ):
        self.executable_at = executable_at
        self.now = now
        if decoded is None:
            detail = TIMELOCK_NOT_EXPIRED
            if executable_at is not None and now is not None:
                detail = f"{TIMELOCK_NOT_EXPIRED} (executable at {executable_at}, now {now})"
            decoded = DecodedError(kind=KIND_CUSTOM, detail=detail, error_name=TIMELOCK_NOT_EXPIRED)
        super().__init__(operation, target, decoded)


class TransactionRevertedError(VaultsError, RuntimeError):
    """A transaction was mined with a failed status."""

    def __init__(self, tx_hash: str, block_number: int | None = None):
        self.tx_hash = tx_hash
        self.block_number = block_number
        super().__init__(f"Transaction {tx_hash} reverted (block {block_number})")


def _looks_like_hex(text: str) -> bool:
    if not text.lower().startswith("0x"):
        return False
    try:
        int(text[2:] or "0", 16)
    except ValueError:
        return False
    return True


def _revert_data(exc: BaseException) -> str | None:
    data = getattr(exc, "data", None)
    if isinstance(data, dict):
        data = data.get("data")
    if isinstance(data, (bytes, bytearray)):
        data = normalize_hex_str(data)
    if isinstance(data, str) and _looks_like_hex(data) and len(data) > 2:
        return data.lower()
    message = getattr(exc, "message", None)
    if isinstance(message, str) and _looks_like_hex(message) and len(message) >= 10:
        return message.lower()
    return None


def _reason(message: str) -> str | None:
    text = message.strip()
    prefix = "execution reverted"
    if text.lower().startswith(prefix):
        text = text[len(prefix) :].lstrip(":").strip()
    if not text or _looks_like_hex(text):
        return None
    return text


def decode_contract_error(exc: BaseException) -> DecodedError:
    """Decode an exception raised by web3 into reason / custom error / raw data / unknown."""
    message = str(getattr(exc, "message", None) or exc)
    data = _revert_data(exc)
    selector = data[:10] if data and len(data) >= 10 else None
    name = ERROR_NAMES.get(selector) if selector else None

    if isinstance(exc, ContractLogicError):
        reason = _reason(message)
        if reason:
            return DecodedError(kind=KIND_REASON, detail=reason, selector=selector, data=data, error_name=name)
    if name:
        return DecodedError(kind=KIND_CUSTOM, detail=name, selector=selector, data=data, error_name=name)
    if data:
        return DecodedError(kind=KIND_RAW, detail=f"revert data {data}", selector=selector, data=data)
    detail = message or type(exc).__name__
    return DecodedError(kind=KIND_UNKNOWN, detail=detail)


def more_specific(committed: DecodedError, dry_run: DecodedError) -> DecodedError:
    """Pick the more informative of two decoded errors; ties keep the committed-call error."""
    if dry_run.rank > committed.rank:
        return dry_run
    return committed
