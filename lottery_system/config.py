"""
Lottery System Configuration
All configurable parameters for the lottery engine
"""

import os

DEFAULT_TERMS = os.getenv(
    "LOTTERY_DEFAULT_TERMS",
    "Winner must have an active C61 account, or a redraw occurs!",
)

# Ticket economics (in skulls)
DEFAULT_TICKET_PRICE = int(os.getenv("LOTTERY_DEFAULT_TICKET_PRICE", "0"))
DEFAULT_MAX_TICKETS_PER_USER = int(os.getenv("LOTTERY_DEFAULT_MAX_TICKETS", "1"))

# Creation limits
MAX_WINNERS = 50
MAX_DURATION_MS = 30 * 24 * 60 * 60 * 1000  # 30 days

# Startup recovery: also look at lotteries that ended this long before restart
RECOVERY_BUFFER_MS = int(os.getenv("LOTTERY_RECOVERY_BUFFER_MINUTES", "5")) * 60 * 1000

# Message refresh cadence (in seconds), picked from the time left
REFRESH_INTERVAL_DEFAULT = 30
REFRESH_INTERVAL_LAST_5_MIN = 15
REFRESH_INTERVAL_LAST_MINUTE = 5
LAST_5_MIN_MS = 5 * 60 * 1000
LAST_MINUTE_MS = 60 * 1000

# Ending a lottery always persists status=ended; retry once on failure
STATUS_UPDATE_ATTEMPTS = 2
