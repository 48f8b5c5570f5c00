"""
API dependencies

- get_manager：每個 request 一個 GameManager（綁定該 request 的 DB session）
- get_identity：從 X-Wallet-Address header 取得呼叫者
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from database import get_db
from core.game_manager import GameManager
from core.gateway import SqlGateway
from core.identity import StaticIdentity


def get_manager(db: Session = Depends(get_db)) -> GameManager:
    return GameManager(SqlGateway(db))


def get_identity(x_wallet_address: Optional[str] = Header(None)) -> StaticIdentity:
    return StaticIdentity(x_wallet_address)
