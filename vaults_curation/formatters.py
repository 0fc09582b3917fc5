"""Formatting and conversion utilities."""

from dataclasses import asdict, is_dataclass
from decimal import Decimal
from typing import Any

from vaults_curation.constants import WAD, ZERO_ADDRESS

SECONDS_PER_YEAR = 365 * 24 * 3600


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling various types."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip()
        if v.startswith("0x"):
            return int(v, 16)
        return int(v)
    return int(value)


def normalize_hex_str(value) -> str:
    """Normalize hex string to 0x-prefixed format."""
    if isinstance(value, (bytes, bytearray)):
        return f"0x{value.hex()}"
    if hasattr(value, "hex") and not isinstance(value, str):
        hex_str = value.hex()
        return hex_str if hex_str.startswith("0x") else f"0x{hex_str}"
    s = str(value).strip()
    if s.lower().startswith("0x"):
        return f"0x{s[2:]}"
    return f"0x{s}"


def hex_to_bytes(value) -> bytes:
    """Inverse of normalize_hex_str: accept bytes or 0x-hex and return raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(normalize_hex_str(value)[2:])


def is_zero_address(address: str | None) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


def format_units(value: int, decimals: int = 18, *, places: int = 6) -> str:
    """Format an integer token amount with the given decimals."""
    amount = Decimal(value) / (Decimal(10) ** decimals)
    s = f"{amount:.{places}f}".rstrip("0").rstrip(".")
    return s or "0"


def format_wad_pct(value: int | None, *, places: int = 2) -> str:
    """Format a WAD-scaled fraction (1e18 == 100%) as a percentage."""
    if value is None:
        return "n/a"
    return f"{(Decimal(value) * 100 / WAD):.{places}f}%"


def format_annual_wad_pct(value: int | None) -> str:
    """Format a per-second WAD rate (management fee, max rate) as an annualized percentage."""
    if value is None:
        return "n/a"
    return format_wad_pct(value * SECONDS_PER_YEAR)


def format_duration(seconds: int | None) -> str:
    """Format seconds as a compact d/h/m/s string."""
    if seconds is None:
        return "n/a"
    if seconds == 0:
        return "0s"
    parts = []
    remaining = seconds
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count}{unit}")
    return " ".join(parts)


def as_jsonable(value: Any) -> Any:
    """Convert dataclasses, bytes and tuples into JSON-serializable structures."""
    if is_dataclass(value) and not isinstance(value, type):
        return as_jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(k): as_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [as_jsonable(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return normalize_hex_str(value)
    # Large integers (caps, supplies) overflow JS numbers.
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) > 2**53:
        return str(value)
    return value
