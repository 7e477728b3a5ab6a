"""
Lottery System Package
Time-bounded lotteries with weighted ticket draws and a skull balance ledger
"""

__version__ = "1.0.0"

# Export main components
from .commands import LotteryCommands
from .database import setup_lottery_database
from .ledger import SkullLedger
from .manager import LotteryManager
from .models import Lottery, LotteryStatus
from .presentation import DiscordPresenter, LotteryPresenter
from .store import LotteryStore

__all__ = [
    'LotteryCommands',
    'setup_lottery_database',
    'SkullLedger',
    'LotteryManager',
    'Lottery',
    'LotteryStatus',
    'DiscordPresenter',
    'LotteryPresenter',
    'LotteryStore'
]
