from __future__ import annotations

import re
from decimal import ROUND_FLOOR, Decimal

from thalexa.domain.entities.units import MIST_PER_SUI


SUI_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")
SUI_OBJECT_ID_PATTERN = re.compile(r"^0x[a-fA-F0-9]{1,64}$")


def mist_to_sui(mist: int) -> Decimal:
    return Decimal(int(mist)) / Decimal(MIST_PER_SUI)


def sui_to_mist(sui: Decimal | int | str) -> int:
    value = Decimal(str(sui)) * Decimal(MIST_PER_SUI)
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def format_address(address: str, chars: int = 6) -> str:
    if not address:
        return ""
    return f"{address[:chars]}...{address[-chars:]}"


def is_valid_sui_address(address: str) -> bool:
    return bool(SUI_ADDRESS_PATTERN.match(address or ""))


def normalize_object_id(object_id: str) -> str:
    """Expand short ids such as ``0x6`` to the canonical 32-byte form."""
    value = (object_id or "").strip()
    if not SUI_OBJECT_ID_PATTERN.match(value):
        raise ValueError(f"Invalid object id: {object_id!r}")
    return "0x" + value[2:].lower().rjust(64, "0")
