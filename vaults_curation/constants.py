"""Constants and configuration for vault curation."""

from vaults_curation.models import AdapterTypeSpec

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Relative caps, fees and the max rate are WAD-scaled: 1e18 == 100%.
WAD = 10**18

# Vault-level ceilings enforced on-chain (VaultV2 ConstantsLib).
MAX_PERFORMANCE_FEE = WAD // 2
MAX_MANAGEMENT_FEE = WAD // 20 // (365 * 24 * 3600)

DEFAULT_TIMEOUT = 30
DEFAULT_RECEIPT_TIMEOUT = 120
DEFAULT_POLL_INTERVAL = 2
DEFAULT_MAX_WORKERS = 8

STATUS_APPLIED = "applied"
STATUS_PENDING = "pending"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"

PATH_INSTANT = "instant"
PATH_SUBMIT = "submit"
PATH_EXECUTE = "execute"
PATH_INCREASE = "increase"
PATH_DECREASE = "decrease"

# Adapter type names, shared by both product lines.
ERC4626 = "erc4626"
ERC4626_AUTO_COMPOUND = "erc4626WithAutoCompoundRewards"
COMPOUND_V3 = "compoundV3"
MORPHO_MARKET_V1 = "morphoMarketV1"
MORPHO_VAULT_V1 = "morphoVaultV1"

ID_STYLE_SINGLE = "single"
ID_STYLE_MARKETS = "markets"

MARKET_PARAMS_COMPONENTS: list[dict] = [
    {"name": "loanToken", "type": "address", "internalType": "address"},
    {"name": "collateralToken", "type": "address", "internalType": "address"},
    {"name": "oracle", "type": "address", "internalType": "address"},
    {"name": "irm", "type": "address", "internalType": "address"},
    {"name": "lltv", "type": "uint256", "internalType": "uint256"},
]


def _param(name: str, type_: str) -> dict:
    if type_ == "MarketParams":
        return {
            "name": name,
            "type": "tuple",
            "internalType": "struct MarketParams",
            "components": MARKET_PARAMS_COMPONENTS,
        }
    return {"name": name, "type": type_, "internalType": type_}


def _function(
    name: str,
    inputs: tuple[tuple[str, str], ...] = (),
    outputs: tuple[str, ...] = (),
    *,
    mutability: str = "view",
) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [_param(n, t) for n, t in inputs],
        "outputs": [_param("", t) for t in outputs],
    }


def _write(name: str, *inputs: tuple[str, str]) -> dict:
    return _function(name, tuple(inputs), mutability="nonpayable")


# VaultV2 surface used by the timelock, cap and snapshot code paths.
VAULT_ABI: list[dict] = [
    # Metadata and accounting
    _function("name", outputs=("string",)),
    _function("symbol", outputs=("string",)),
    _function("asset", outputs=("address",)),
    _function("totalAssets", outputs=("uint256",)),
    _function("totalSupply", outputs=("uint256",)),
    _function("virtualShares", outputs=("uint256",)),
    # Roles
    _function("owner", outputs=("address",)),
    _function("curator", outputs=("address",)),
    _function("isSentinel", (("account", "address"),), ("bool",)),
    _function("isAllocator", (("account", "address"),), ("bool",)),
    # Fees
    _function("performanceFee", outputs=("uint256",)),
    _function("performanceFeeRecipient", outputs=("address",)),
    _function("managementFee", outputs=("uint256",)),
    _function("managementFeeRecipient", outputs=("address",)),
    _function("maxRate", outputs=("uint256",)),
    _function("forceDeallocatePenalty", (("adapter", "address"),), ("uint256",)),
    # Adapters, liquidity and caps
    _function("adaptersLength", outputs=("uint256",)),
    _function("adapters", (("index", "uint256"),), ("address",)),
    _function("isAdapter", (("account", "address"),), ("bool",)),
    _function("adapterRegistry", outputs=("address",)),
    _function("liquidityAdapter", outputs=("address",)),
    _function("liquidityData", outputs=("bytes",)),
    _function("allocation", (("id", "bytes32"),), ("uint256",)),
    _function("absoluteCap", (("id", "bytes32"),), ("uint256",)),
    _function("relativeCap", (("id", "bytes32"),), ("uint256",)),
    # Timelock bookkeeping
    _function("timelock", (("selector", "bytes4"),), ("uint256",)),
    _function("executableAt", (("data", "bytes"),), ("uint256",)),
    _write("submit", ("data", "bytes")),
    _write("revoke", ("data", "bytes")),
    _write("multicall", ("data", "bytes[]")),
    # Timelocked setters
    _write("setIsAdapter", ("account", "address"), ("newIsAdapter", "bool")),
    _write("increaseTimelock", ("selector", "bytes4"), ("newDuration", "uint256")),
    _write("decreaseTimelock", ("selector", "bytes4"), ("newDuration", "uint256")),
    _write("increaseAbsoluteCap", ("idData", "bytes"), ("newAbsoluteCap", "uint256")),
    _write("increaseRelativeCap", ("idData", "bytes"), ("newRelativeCap", "uint256")),
    _write("decreaseAbsoluteCap", ("idData", "bytes"), ("newAbsoluteCap", "uint256")),
    _write("decreaseRelativeCap", ("idData", "bytes"), ("newRelativeCap", "uint256")),
    _write("setIsAllocator", ("account", "address"), ("newIsAllocator", "bool")),
    _write("setAdapterRegistry", ("newAdapterRegistry", "address")),
    _write("setReceiveSharesGate", ("newReceiveSharesGate", "address")),
    _write("setSendSharesGate", ("newSendSharesGate", "address")),
    _write("setReceiveAssetsGate", ("newReceiveAssetsGate", "address")),
    _write("setSendAssetsGate", ("newSendAssetsGate", "address")),
    _write("setPerformanceFee", ("newPerformanceFee", "uint256")),
    _write("setPerformanceFeeRecipient", ("newPerformanceFeeRecipient", "address")),
    _write("setManagementFee", ("newManagementFee", "uint256")),
    _write("setManagementFeeRecipient", ("newManagementFeeRecipient", "address")),
    _write("setMaxRate", ("newMaxRate", "uint256")),
    _write("setForceDeallocatePenalty", ("adapter", "address"), ("newForceDeallocatePenalty", "uint256")),
]

# Functions the vault guards with a per-selector timelock, in display order.
GOVERNED_FUNCTIONS: tuple[str, ...] = (
    "setIsAdapter",
    "decreaseTimelock",
    "increaseAbsoluteCap",
    "increaseRelativeCap",
    "setIsAllocator",
    "setAdapterRegistry",
    "setReceiveSharesGate",
    "setSendSharesGate",
    "setReceiveAssetsGate",
    "setSendAssetsGate",
    "setPerformanceFee",
    "setPerformanceFeeRecipient",
    "setManagementFee",
    "setManagementFeeRecipient",
    "setMaxRate",
    "setForceDeallocatePenalty",
)

ERC20_MIN_ABI: list[dict] = [
    _function("balanceOf", (("account", "address"),), ("uint256",)),
    _function("decimals", outputs=("uint8",)),
]

# Every adapter exposes the factory that deployed it.
ADAPTER_FACTORY_GETTER_ABI: list[dict] = [_function("factory", outputs=("address",))]

# Custom errors raised by the vault and the adapter factories. Selectors are derived at import time.
ERROR_SIGNATURES: tuple[str, ...] = (
    "Abdicated()",
    "AbsoluteCapExceeded()",
    "AbsoluteCapNotDecreasing()",
    "AbsoluteCapNotIncreasing()",
    "AutomaticallyTimelocked()",
    "CannotReceiveAssets()",
    "CannotReceiveShares()",
    "CannotSendAssets()",
    "CannotSendShares()",
    "DataAlreadyPending()",
    "DataNotTimelocked()",
    "FeeInvariantBroken()",
    "FeeTooHigh()",
    "MaxRateTooHigh()",
    "NoCode()",
    "NotAdapter()",
    "NotInAdapterRegistry()",
    "PenaltyTooHigh()",
    "RelativeCapAboveOne()",
    "RelativeCapExceeded()",
    "RelativeCapNotDecreasing()",
    "RelativeCapNotIncreasing()",
    "TimelockNotDecreasing()",
    "TimelockNotExpired()",
    "TimelockNotIncreasing()",
    "TransferFromReturnedFalse()",
    "TransferReturnedFalse()",
    "Unauthorized()",
    "ZeroAbsoluteCap()",
    "ZeroAddress()",
    "ZeroAllocation()",
)

TIMELOCK_NOT_EXPIRED = "TimelockNotExpired"

# Byzantine product line: four adapter types, listed in lookup priority order.
BYZANTINE_ADAPTER_TYPES: tuple[AdapterTypeSpec, ...] = (
    AdapterTypeSpec(
        name=ERC4626,
        create_fn="createERC4626Adapter",
        lookup_fn="erc4626Adapter",
        membership_fn="isERC4626Adapter",
        underlying_fn="erc4626Vault",
        id_style=ID_STYLE_SINGLE,
    ),
    AdapterTypeSpec(
        name=ERC4626_AUTO_COMPOUND,
        create_fn="createERC4626MerklAdapter",
        lookup_fn="erc4626MerklAdapter",
        membership_fn="isERC4626MerklAdapter",
        underlying_fn="erc4626Vault",
        id_style=ID_STYLE_SINGLE,
    ),
    AdapterTypeSpec(
        name=COMPOUND_V3,
        create_fn="createCompoundV3Adapter",
        lookup_fn="compoundV3Adapter",
        membership_fn="isCompoundV3Adapter",
        underlying_fn="comet",
        id_style=ID_STYLE_SINGLE,
        extra_param="cometRewards",
    ),
    AdapterTypeSpec(
        name=MORPHO_MARKET_V1,
        create_fn="createMorphoMarketV1Adapter",
        lookup_fn="morphoMarketV1Adapter",
        membership_fn="isMorphoMarketV1Adapter",
        underlying_fn="morpho",
        id_style=ID_STYLE_MARKETS,
    ),
)

# Morpho product line: vault-of-vaults and market adapters.
MORPHO_ADAPTER_TYPES: tuple[AdapterTypeSpec, ...] = (
    AdapterTypeSpec(
        name=MORPHO_VAULT_V1,
        create_fn="createMorphoVaultV1Adapter",
        lookup_fn="morphoVaultV1Adapter",
        membership_fn="isMorphoVaultV1Adapter",
        underlying_fn="morphoVaultV1",
        id_style=ID_STYLE_SINGLE,
    ),
    BYZANTINE_ADAPTER_TYPES[3],
)

ADAPTER_FAMILIES: dict[str, tuple[AdapterTypeSpec, ...]] = {
    "byzantine": BYZANTINE_ADAPTER_TYPES,
    "morpho": MORPHO_ADAPTER_TYPES,
}


def adapter_factory_abi(spec: AdapterTypeSpec) -> list[dict]:
    """Build the factory ABI (create / lookup / membership) for an adapter type."""
    params: list[tuple[str, str]] = [("parentVault", "address"), ("underlying", "address")]
    if spec.extra_param:
        params.append((spec.extra_param, "address"))
    return [
        _function(spec.create_fn, tuple(params), ("address",), mutability="nonpayable"),
        _function(spec.lookup_fn, tuple(params), ("address",)),
        _function(spec.membership_fn, (("account", "address"),), ("bool",)),
    ]


def adapter_abi(spec: AdapterTypeSpec) -> list[dict]:
    """Build the adapter ABI for an adapter type (factory, underlying getter, ids)."""
    abi = [
        _function("factory", outputs=("address",)),
        _function(spec.underlying_fn, outputs=("address",)),
    ]
    if spec.id_style == ID_STYLE_MARKETS:
        abi.extend(
            [
                _function("marketParamsListLength", outputs=("uint256",)),
                _function("marketParamsList", (("index", "uint256"),), ("MarketParams",)),
                _function("ids", (("marketParams", "MarketParams"),), ("bytes32[]",)),
            ]
        )
    else:
        abi.append(_function("ids", outputs=("bytes32[]",)))
    return abi


# Deployed contract addresses per chain.
NETWORKS: dict[int, dict] = {
    8453: {
        "name": "Base Mainnet",
        "family": "byzantine",
        "vault_factory": "0x9615550EA8Fa52bdAC83de3FC9A280dBa3D981eE",
        "scan_link": "https://basescan.org",
        "adapter_factories": {
            COMPOUND_V3: "0xbab80daae43ebdf77b12c0b95af9b95c44172f3c",
            ERC4626: "0xd5e0fe34ae0827a778043e89e045881b058e5dcd",
            ERC4626_AUTO_COMPOUND: "0x77fb32c0056ca58790d70799a980776349a2d4e7",
            MORPHO_MARKET_V1: "0x40ee5564691d04e77764f155cfa1494c7304ce13",
        },
    },
    42161: {
        "name": "Arbitrum One",
        "family": "byzantine",
        "vault_factory": "0x4D4A1eF022410b1a5c04049E5c3b1651FDd9EcBA",
        "scan_link": "https://arbiscan.io",
        "adapter_factories": {
            COMPOUND_V3: "0x1f0fae18354695e9c84b4a705242eb3405862bb4",
            ERC4626: "0x752edbfa451d979af0dcced1886c0d4b18d797a6",
            ERC4626_AUTO_COMPOUND: "0x6c2e70da7d8114ae3a550d36e6860a294eb4888b",
            MORPHO_MARKET_V1: "0xba98a4d436e79639a1598afc988efb7a828d7f08",
        },
    },
    11155111: {
        "name": "Ethereum Sepolia",
        "family": "byzantine",
        "vault_factory": "0xf9332a83747b169f99dc4b247f3f1f7f22863703",
        "scan_link": "https://sepolia.etherscan.io",
        "adapter_factories": {
            ERC4626: "0x650CDA0043f61E49383dD201b318Ad94f4C3A7A1",
            ERC4626_AUTO_COMPOUND: "0x650CDA0043f61E49383dD201b318Ad94f4C3A7A1",
            COMPOUND_V3: "0x650CDA0043f61E49383dD201b318Ad94f4C3A7A1",
            MORPHO_MARKET_V1: "0xE5B709A14859EdF820347D78E587b1634B0ec771",
        },
    },
}
