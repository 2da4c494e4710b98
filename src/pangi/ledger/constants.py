# src/pangi/ledger/constants.py
from __future__ import annotations

"""PANGI monetary and policy constants.

Anchors:
- 9 decimals: 1 PANGI = 1e9 base units ("scales")
- Special distribution pool: 63,000,000 PANGI
- Percentages are basis points (10,000 = 100%)
- Timestamps are unix seconds
"""

# Monetary precision (1 PANGI = 1e9 scales)
PANGI_DECIMALS: int = 9
SCALES_PER_PANGI: int = 10**PANGI_DECIMALS

# Machine bounds mirrored from the on-chain integer types
U64_MAX: int = 2**64 - 1
U32_MAX: int = 2**32 - 1

BPS_DENOM: int = 10_000

SECONDS_PER_DAY: int = 24 * 60 * 60
DAYS_PER_YEAR: int = 365

# ---------------------------------------------------------------------------
# Transfer tax
# ---------------------------------------------------------------------------

MAX_TAX_RATE_BPS: int = 1_000  # 10%
MIN_TRANSFER_AMOUNT: int = 1
MAX_TRANSFER_AMOUNT: int = 1_000_000 * SCALES_PER_PANGI

DEFAULT_P2P_RATE_BPS: int = 100
DEFAULT_EXCHANGE_RATE_BPS: int = 50
DEFAULT_WHALE_RATE_BPS: int = 200
DEFAULT_WHALE_THRESHOLD: int = 10_000 * SCALES_PER_PANGI

# ---------------------------------------------------------------------------
# NFT evolution
# ---------------------------------------------------------------------------

EVOLUTION_LADDER = (
    "Hatchling",
    "Juvenile",
    "Adolescent",
    "Young Adult",
    "Adult",
    "Mature",
    "Elder",
    "Ancient",
    "Legendary",
    "Transcendent",
)
MAX_EVOLUTION_INDEX: int = len(EVOLUTION_LADDER) - 1

# reward_for(n) = floor(BASE * (NUM/DEN)**n), i.e. 1000 * 1.5**n
EVOLUTION_BASE_REWARD: int = 1_000
EVOLUTION_GROWTH_NUM: int = 3
EVOLUTION_GROWTH_DEN: int = 2

MIN_EVOLUTION_COOLDOWN: int = 60
MAX_EVOLUTION_COOLDOWN: int = 30 * SECONDS_PER_DAY
MAX_TOTAL_NFTS: int = 10_000

# ---------------------------------------------------------------------------
# Special distribution
# ---------------------------------------------------------------------------

TOTAL_DISTRIBUTION_SUPPLY: int = 63_000_000 * SCALES_PER_PANGI
MIN_DISTRIBUTION_PERIOD: int = SECONDS_PER_DAY
MAX_DISTRIBUTION_PERIOD: int = DAYS_PER_YEAR * SECONDS_PER_DAY
MAX_SPECIAL_NFTS: int = 25

# Vault split (the liquid bucket is the remainder)
DISTRIBUTION_BURN_BPS: int = 5_000
DISTRIBUTION_VEST_BPS: int = 2_500

# ---------------------------------------------------------------------------
# Staking
# ---------------------------------------------------------------------------

MIN_STAKE_AMOUNT: int = 1_000_000  # 0.001 PANGI
MAX_STAKE_AMOUNT: int = 1_000_000 * SCALES_PER_PANGI
EARLY_UNLOCK_PENALTY_BPS: int = 1_500  # 15%, returned to the reward pool
CLAIM_COOLDOWN_SECONDS: int = 60 * 60
DEPOSIT_COOLDOWN_SECONDS: int = 60

# lock duration (days) -> APY (bps)
STAKING_APY_BPS = {
    30: 500,
    60: 800,
    90: 1_200,
    180: 1_800,
    365: 2_500,
}
