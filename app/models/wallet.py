from enum import Enum

from app.models.base import MongoModel


class WalletType(str, Enum):
    CASH = "cash"
    GPAY = "gpay"
    INVESTMENT = "investment"


WALLET_NAMES = {
    WalletType.CASH: "Cash",
    WalletType.GPAY: "GPay",
    WalletType.INVESTMENT: "Investment",
}


def wallet_id(user_id: str, wallet: WalletType | str) -> str:
    return f"{user_id}_{WalletType(wallet).value}"


class Wallet(MongoModel):
    user_id: str
    type: WalletType
    name: str
    balance_cents: int = 0  # May go negative


class WalletHistoryType(str, Enum):
    ADD = "add"
    DEDUCT = "deduct"


class WalletHistory(MongoModel):
    user_id: str
    wallet: WalletType
    amount_cents: int  # Always positive, direction is in type
    type: WalletHistoryType
    reason: str = ""
