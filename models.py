"""
資料模型

- Enum：遊戲中的固定值（階段、角色、房間、隊伍、指令）
- KeyValueEntry：Persistence Gateway 底層的 key-value 表

注意：遊戲本身不建立 Player / GameState 表，
所有遊戲資料都以 JSON blob 的形式存在 kv_entries 裡
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, UniqueConstraint

from database import Base


class Phase(str, enum.Enum):
    """遊戲階段（同時也是狀態機的狀態）"""
    LOBBY = "lobby"
    ROUND1 = "round1"
    ROUND2 = "round2"
    ROUND3 = "round3"
    ENDED = "ended"


# 進行中的回合階段
ROUND_PHASES = (Phase.ROUND1, Phase.ROUND2, Phase.ROUND3)

# 最後一回合，之後就是 ENDED
FINAL_ROUND = 3


def phase_for_round(round_number: int) -> Phase:
    """
    回合數轉成階段

    範例：
        phase_for_round(0) -> Phase.LOBBY
        phase_for_round(2) -> Phase.ROUND2
    """
    if round_number == 0:
        return Phase.LOBBY
    return Phase(f"round{round_number}")


class Role(enum.IntEnum):
    """玩家角色（編碼前的整數值）"""
    PRESIDENT = 1
    BOMBER = 2
    CIVILIAN = 3


class RoomColor(enum.IntEnum):
    """房間（編碼前的整數值）"""
    BLUE = 1
    RED = 2

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label) -> "RoomColor":
        """'blue' / 'red'（或已經是 RoomColor）轉成 enum"""
        if isinstance(label, cls):
            return label
        try:
            return cls[str(label).upper()]
        except KeyError:
            raise ValueError(f"Unknown room {label!r}") from None


class Team(str, enum.Enum):
    """獲勝隊伍"""
    BLUE = "blue"
    RED = "red"


class Command(str, enum.Enum):
    """狀態機接受的指令"""
    START = "start"
    ELECT_LEADER = "elect_leader"
    SELECT_HOSTAGE = "select_hostage"
    ADVANCE = "advance"


class KeyValueEntry(Base):
    """
    Persistence Gateway 的儲存單位：一個 key 對應一個 byte blob

    version 是樂觀鎖的版本號：
    - 不存在的 key 視為 version 0
    - 每次寫入 +1
    """
    __tablename__ = "kv_entries"
    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_kv_namespace_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    namespace = Column(String(64), nullable=False, index=True)
    key = Column(String(255), nullable=False)
    value = Column(LargeBinary, nullable=False, default=b"")
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
