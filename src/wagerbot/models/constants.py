"""Shared economy constants.

Placed here so the config layer, the games and the database layer can import
them without creating a layer violation.
"""

from __future__ import annotations

STARTING_BALANCE = 100
MIN_BET = 1
MAX_BET = 1000

DAILY_REWARD = 100
DAILY_COOLDOWN_MS = 24 * 60 * 60 * 1000

# Session deadlines and tick intervals (milliseconds)
FLIP_TIMEOUT_MS = 45_000
RPS_TIMEOUT_MS = 45_000
CRASH_TIMEOUT_MS = 45_000
CRASH_TICK_MS = 1_000
HORSE_TIMEOUT_MS = 45_000
HORSE_TICK_MS = 1_000
SCRATCH_TIMEOUT_MS = 45_000
BJ_TIMEOUT_MS = 45_000
SLOTS_TIMEOUT_MS = 30_000
SLOTS_TICK_MS = 700
WHEEL_TIMEOUT_MS = 30_000
SETTLE_RETRY_MS = 5_000

# Game rules
CRASH_GROWTH = 1.12
CRASH_CAP_MARGIN = 0.5
CRASH_AUTOCASH_AT = 2.0
HORSE_TRACK_LENGTH = 8
HORSE_COUNT = 4
HORSE_ADVANCE_CHANCE = 0.65
HORSE_SPUR_BONUS = 0.2
HORSE_MAX_CHANCE = 0.95
HORSE_PAYOUT_MULTIPLIER = 3
BJ_DEALER_STAND = 17
BJ_BLACKJACK_PAYOUT = 2.5
SCRATCH_SPOTS = 9
SCRATCH_PICKS = 3
SCRATCH_TRIPLE_MULTIPLIER = 5
SCRATCH_PAIR_MULTIPLIER = 2
WHEEL_MIN_STEPS = 14
WHEEL_MAX_STEPS = 19
WHEEL_BASE_DELAY_MS = 140
WHEEL_STEP_DELAY_MS = 20

# Seconds between router sweeps of expired callbacks
ROUTER_SWEEP_SECONDS = 30
