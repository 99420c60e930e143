from .account import Account
from .asset import Asset, AssetKind
from .holding import Holding
from .trade import TradeRecord, TradeSide
