"""
Roster views：從玩家列表算出來的衍生資料（不會存回去）

- 依房間分組
- 目前檢視者（用 address 比對）
- 搜尋（名稱或 address，不分大小寫）
- 統計（總人數 / 藍房 / 紅房）
"""
from typing import Dict, Iterable, List, Optional
import logging

from models import RoomColor
from schemas import Player
from core.exceptions import DecodeError

logger = logging.getLogger(__name__)


def players_in_room(players: Iterable[Player], room: RoomColor) -> List[Player]:
    """
    篩選某個房間的玩家

    房間 token 壞掉的玩家不會出現在任何房間裡
    """
    result = []
    for player in players:
        try:
            if player.room == room:
                result.append(player)
        except DecodeError as e:
            logger.warning(f"Skipping player {player.id} in room filter: {e}")
    return result


def is_current_viewer(player: Player, caller_address: Optional[str]) -> bool:
    """address 相同就是自己（錢包地址不分大小寫）"""
    if not caller_address:
        return False
    return player.address.lower() == caller_address.lower()


def find_viewer(players: Iterable[Player], caller_address: Optional[str]) -> Optional[Player]:
    return next((p for p in players if is_current_viewer(p, caller_address)), None)


def find_host(players: Iterable[Player]) -> Optional[Player]:
    return next((p for p in players if p.is_host), None)


def search_players(players: Iterable[Player], term: str) -> List[Player]:
    """
    搜尋玩家

    參數：
        players: 玩家列表
        term: 關鍵字，比對名稱或 address（子字串、不分大小寫）

    返回：
        符合的玩家（保持原本順序）；term 是空字串時返回全部
    """
    needle = (term or "").lower()
    return [
        p for p in players
        if needle in p.name.lower() or needle in p.address.lower()
    ]


def room_statistics(players: Iterable[Player]) -> Dict[str, int]:
    players = list(players)
    return {
        "total": len(players),
        "blue": len(players_in_room(players, RoomColor.BLUE)),
        "red": len(players_in_room(players, RoomColor.RED)),
    }
