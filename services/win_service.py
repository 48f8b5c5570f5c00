"""
勝負判定服務

規則：總統和炸彈客在同一個房間 -> 紅隊贏，否則藍隊贏
"""
from typing import Iterable, Optional

from models import Role, Team
from schemas import Player


def _find_by_role(players: Iterable[Player], role: Role) -> Optional[Player]:
    return next((p for p in players if p.role == role), None)


def evaluate(players: Iterable[Player]) -> Team:
    """
    計算遊戲結果（純函式，隨時可以呼叫）

    邏輯：
    - 找第一個總統和第一個炸彈客
    - 任一方不存在（資料損毀或還沒分配）-> 藍隊
    - 同房間 -> 紅隊（炸彈客抓到總統）
    - 不同房間 -> 藍隊

    參數：
        players: 已載入的玩家列表

    返回：
        Team enum
    """
    players = list(players)
    president = _find_by_role(players, Role.PRESIDENT)
    bomber = _find_by_role(players, Role.BOMBER)

    if president is None or bomber is None:
        return Team.BLUE

    return Team.RED if president.room == bomber.room else Team.BLUE
