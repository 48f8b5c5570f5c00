"""
角色 / 房間分配服務

純計算邏輯，不涉及狀態轉換

分配規則（加入順序決定）：
- 第 1 位：一定是總統（President）
- 第 2 位：一定是炸彈客（Bomber）
- 第 3 位之後：30% 機率拿到特殊角色（總統 / 炸彈客各半），70% 是平民
- 房間：不看角色，藍 / 紅各 50%
"""
import random
import time
import uuid
from typing import Optional

from models import Role, RoomColor

# random() 大於這個值才拿到特殊角色（= 30% 機率）
CIVILIAN_THRESHOLD = 0.7


def assign_role(player_count: int, rng: Optional[random.Random] = None) -> Role:
    """
    根據目前人數決定新玩家的角色

    參數：
        player_count: 新玩家加入前的人數
        rng: 亂數來源（測試時可以注入固定序列）

    返回：
        Role enum

    範例：
        assign_role(0) -> Role.PRESIDENT
        assign_role(1) -> Role.BOMBER
        assign_role(5) -> 大多是 Role.CIVILIAN
    """
    rng = rng or random
    if player_count == 0:
        return Role.PRESIDENT
    if player_count == 1:
        return Role.BOMBER

    if rng.random() > CIVILIAN_THRESHOLD:
        return Role.PRESIDENT if rng.random() > 0.5 else Role.BOMBER
    return Role.CIVILIAN


def assign_room(rng: Optional[random.Random] = None) -> RoomColor:
    """隨機分配房間，和角色無關"""
    rng = rng or random
    return RoomColor.BLUE if rng.random() > 0.5 else RoomColor.RED


def generate_player_id() -> str:
    """
    生成玩家 ID

    格式：「毫秒時間戳-4 碼隨機字元」
    範例：1718000000000-a3f9

    注意：
    - 不檢查唯一性（由 PlayerDirectory 負責）
    """
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:4]}"
