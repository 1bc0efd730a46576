from .bank import BankService, BankSnapshot
from .config import BankConfig, EconomyConfigurationError, MarketConfig
from .market import Instrument, MarketService, MarketSnapshot, PricePoint
from .room import RoomShop, RoomSnapshot
from .wallet import Transaction, WalletLedger, WalletSnapshot

__all__ = [
    "BankConfig",
    "BankService",
    "BankSnapshot",
    "EconomyConfigurationError",
    "Instrument",
    "MarketConfig",
    "MarketService",
    "MarketSnapshot",
    "PricePoint",
    "RoomShop",
    "RoomSnapshot",
    "Transaction",
    "WalletLedger",
    "WalletSnapshot",
]
