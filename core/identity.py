"""
Identity Provider：呼叫者是誰、能不能簽名

核心只用到兩件事：
- caller_identity(): 錢包地址，沒連線時是 None
- request_signature(message): 請錢包簽名（只有「揭露自己的角色」會用到）
"""
from abc import ABC, abstractmethod
from typing import Optional
import secrets
import time

from database import get_settings


class IdentityProvider(ABC):

    @abstractmethod
    def caller_identity(self) -> Optional[str]:
        pass

    @abstractmethod
    def request_signature(self, message: str) -> str:
        pass


class StaticIdentity(IdentityProvider):
    """
    Request scope 的身分

    API 層從 header 拿到 address，簽名則由前端先簽好放在 request body 裡

    參數：
        address: 錢包地址（可以是 None，代表沒連線）
        signature: 預先簽好的簽名
    """

    def __init__(self, address: Optional[str], signature: Optional[str] = None):
        self.address = (address or "").strip() or None
        self.signature = signature

    def caller_identity(self) -> Optional[str]:
        return self.address

    def request_signature(self, message: str) -> str:
        return self.signature or ""


def build_disclosure_message(public_key: Optional[str] = None) -> str:
    """
    組出揭露角色時要簽名的訊息

    格式（每行一個欄位）：
        publickey:0x...
        contractAddresses:...
        contractsChainId:...
        startTimestamp:...
        durationDays:...
    """
    settings = get_settings()
    public_key = public_key or f"0x{secrets.token_hex(32)}"
    return (
        f"publickey:{public_key}\n"
        f"contractAddresses:{settings.contract_address}\n"
        f"contractsChainId:{settings.chain_id}\n"
        f"startTimestamp:{int(time.time())}\n"
        f"durationDays:{settings.disclosure_duration_days}"
    )
