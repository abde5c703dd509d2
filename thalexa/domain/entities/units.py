from __future__ import annotations

MIST_PER_SUI = 1_000_000_000
SUI_DECIMALS = 9
SUI_COIN_TYPE = "0x2::sui::SUI"
