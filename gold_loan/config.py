"""Business constants for the gold loan calculator.

Defaults that schemes may leave out of their configuration live here so the
rate selector, the scheme parser and the web layer agree on them.
"""

from decimal import Decimal

# =============================================================================
# SCHEME DEFAULTS
# =============================================================================

# Added to the base rate when a monthly scheme omits its surcharge rate
DEFAULT_MONTHLY_SURCHARGE_STEP = Decimal("0.5")

# Added to the annual base rate when a compound scheme omits its surcharge rate
DEFAULT_YEARLY_SURCHARGE_STEP = Decimal("6")

# Minimum days of interest charged by day-basis compound schemes
DEFAULT_MIN_DAYS = 10

# Validity of the annual base rate for compound schemes (one year)
DEFAULT_COMPOUND_VALIDITY_MONTHS = 12

# Day-basis proration uses a 30 day month (360 day year)
DAYS_PER_MONTH = 30

MONTHS_PER_YEAR = 12

# =============================================================================
# MONEY
# =============================================================================

# Payoff amounts are rounded to whole currency units
CURRENCY_QUANTUM = Decimal("1")

# =============================================================================
# FORMATS
# =============================================================================

# Date format accepted on input and written on output (ISO 8601)
DATE_FORMAT = "%Y-%m-%d"
