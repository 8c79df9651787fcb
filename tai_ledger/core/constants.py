from decimal import Decimal

ZERO = Decimal("0")
Q18 = Decimal("0.000000000000000001")
CENT = Decimal("0.01")

# 1 TAI = 0.6 USDT
TAI_TO_USDT_RATE = Decimal("0.6")

REFERRAL_BONUS_TAI = Decimal("0.5")

MINING_RATE_PER_HOUR = Decimal("0.25")
MINUTES_PER_HOUR = 60

STAKING_TERM_DAYS = 30
STAKING_APY_PERCENT = Decimal("12")
DAYS_IN_YEAR = 365

TAI_ID_PREFIX = "TAI"
REFERRAL_CODE_PREFIX = "REF"
IDENTITY_SUFFIX_LENGTH = 8

# NUMERIC(38, 18): 20 integer digits, 18 decimal places
MAX_AMOUNT = Decimal("1E20")
