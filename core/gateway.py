"""
Persistence Gateway：遊戲資料的唯一持久化擁有者

核心只認得「key -> byte blob」這個介面：
- is_available(): 儲存層是否可用
- get_data(key): key 不存在時返回 b""，不會因為找不到而拋錯
- set_data(key, value): 整個 blob 原子替換
- get_versioned / set_versioned: 帶版本號的讀寫（樂觀鎖）

SqlGateway 是唯一的實作，把 blob 存在 kv_entries 表
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional, Tuple
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import KeyValueEntry
from core.exceptions import PersistenceError, WriteConflict
from core.locks import versioned_write
from database import get_settings, transactional

logger = logging.getLogger(__name__)

PLAYERS_LIST_KEY = "players_list"
GAME_STATE_KEY = "game_state"


def player_key(player_id: str) -> str:
    """player_<id>"""
    return f"player_{player_id}"


class PersistenceGateway(ABC):
    """儲存層介面（核心依賴它，但不關心它怎麼實作）"""

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    def get_data(self, key: str) -> bytes:
        pass

    @abstractmethod
    def set_data(self, key: str, value: bytes) -> None:
        pass

    @abstractmethod
    def get_versioned(self, key: str) -> Tuple[bytes, int]:
        """返回 (blob, version)，key 不存在時是 (b"", 0)"""
        pass

    @abstractmethod
    def set_versioned(self, key: str, value: bytes, expected_version: int) -> int:
        """
        版本相符才寫入，返回新版本號

        異常：
            WriteConflict: 版本不符
        """
        pass


class SqlGateway(PersistenceGateway):
    """
    SQLAlchemy 實作的 Gateway

    一個 namespace 就是一局遊戲，所有 key 都加上 namespace 區隔

    參數：
        db: SQLAlchemy Session（通常是 request scope）
        namespace: 預設用 Settings.game_namespace
    """

    def __init__(self, db: Session, namespace: Optional[str] = None):
        self.db = db
        self.namespace = namespace or get_settings().game_namespace

    def is_available(self) -> bool:
        try:
            self.db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Storage is not available: {e}")
            self.db.rollback()
            return False

    def get_data(self, key: str) -> bytes:
        value, _ = self.get_versioned(key)
        return value

    def get_versioned(self, key: str) -> Tuple[bytes, int]:
        try:
            # 只查欄位不查 ORM 物件，避免 identity map 拿到舊資料
            row = self.db.query(KeyValueEntry.value, KeyValueEntry.version).filter(
                KeyValueEntry.namespace == self.namespace,
                KeyValueEntry.key == key
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to read {key}: {e}") from e

        if row is None:
            return b"", 0
        return bytes(row.value or b""), row.version

    def set_data(self, key: str, value: bytes) -> None:
        try:
            _replace_blob(self.db, self.namespace, key, value)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write {key}: {e}") from e

    def set_versioned(self, key: str, value: bytes, expected_version: int) -> int:
        try:
            new_version = _compare_and_set_blob(
                self.db, self.namespace, key, value, expected_version
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write {key}: {e}") from e

        if new_version is None:
            _, actual = self.get_versioned(key)
            raise WriteConflict(key, expected_version, actual)
        return new_version


@transactional
def _replace_blob(db: Session, namespace: str, key: str, value: bytes) -> None:
    """無條件覆蓋（不存在就新增），版本號照樣 +1"""
    updated = db.query(KeyValueEntry).filter(
        KeyValueEntry.namespace == namespace,
        KeyValueEntry.key == key
    ).update(
        {
            KeyValueEntry.value: value,
            KeyValueEntry.version: KeyValueEntry.version + 1,
            KeyValueEntry.updated_at: datetime.now(timezone.utc),
        },
        synchronize_session=False
    )
    if updated == 0:
        db.add(KeyValueEntry(namespace=namespace, key=key, value=value, version=1))


@transactional
def _compare_and_set_blob(
    db: Session,
    namespace: str,
    key: str,
    value: bytes,
    expected_version: int
) -> Optional[int]:
    return versioned_write(db, namespace, key, value, expected_version)
