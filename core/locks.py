"""
並發控制工具

提供 key-level 的樂觀鎖（Optimistic Locking），防止 read-modify-write 的 lost update

做法：
- 每個 key 都有 version 欄位
- 寫入時帶上「讀到的版本」，只有版本沒變才會寫入成功
- 版本不符代表別人先寫了，呼叫者要重新讀取再重算一次
"""
from datetime import datetime, timezone
from functools import wraps
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import KeyValueEntry
from core.exceptions import WriteConflict

logger = logging.getLogger(__name__)


def versioned_write(
    db: Session,
    namespace: str,
    key: str,
    value: bytes,
    expected_version: int
) -> Optional[int]:
    """
    Compare-and-set 寫入一個 key

    使用場景：
    - 更新 game_state
    - 在 players_list 後面加一個玩家

    範例：
        new_version = versioned_write(db, "default", "game_state", blob, 3)
        if new_version is None:
            # 有人搶先寫入，重新讀取
            ...

    參數：
        db: SQLAlchemy Session
        namespace: 遊戲 namespace
        key: key 名稱
        value: 新的 byte blob
        expected_version: 讀取時的版本（0 表示 key 還不存在）

    返回：
        新版本號；版本不符時返回 None

    注意：
        - 不會 commit（由呼叫者的 transaction 負責）
        - expected_version == 0 時用 INSERT，靠 unique constraint 擋住同時建立
    """
    if expected_version == 0:
        db.add(KeyValueEntry(namespace=namespace, key=key, value=value, version=1))
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            return None
        return 1

    updated = db.query(KeyValueEntry).filter(
        KeyValueEntry.namespace == namespace,
        KeyValueEntry.key == key,
        KeyValueEntry.version == expected_version
    ).update(
        {
            KeyValueEntry.value: value,
            KeyValueEntry.version: expected_version + 1,
            KeyValueEntry.updated_at: datetime.now(timezone.utc),
        },
        synchronize_session=False
    )

    if updated == 0:
        return None
    return expected_version + 1


def retry_on_conflict(func):
    """
    Manager 方法的重試 decorator

    整個 read -> transition -> write 流程遇到 WriteConflict 時從頭再跑一次，
    次數上限是 self.max_write_retries，超過就把最後一次的 WriteConflict 拋出去

    使用方式：
        class GameManager:
            @retry_on_conflict
            def elect_leader(self, room, player_id):
                state, version = self._load_state()
                ...
                self._save_state(new_state, version)
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        attempts = max(1, self.max_write_retries)
        for attempt in range(1, attempts + 1):
            try:
                return func(self, *args, **kwargs)
            except WriteConflict as e:
                if attempt == attempts:
                    logger.error(
                        f"{func.__name__} gave up after {attempts} conflicting writes: {e}"
                    )
                    raise
                logger.warning(
                    f"{func.__name__} hit a write conflict (attempt {attempt}/{attempts}), retrying"
                )

    return wrapper
