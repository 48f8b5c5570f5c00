"""
Player Directory：玩家名單與玩家紀錄

儲存格式：
- players_list：JSON array，玩家 ID 依加入順序排列（只會往後加）
- player_<id>：JSON object {role, room, isHost, address, name}

每次操作都重新從 Gateway 讀取，不保留任何記憶體狀態
"""
from typing import Iterable, List, Optional, Tuple
import json
import logging

from pydantic import ValidationError

from schemas import Player, PlayerRecord
from core.exceptions import (
    DecodeError,
    DuplicateError,
    PersistenceError,
    PlayerNotFound,
    WriteConflict,
)
from core.gateway import PersistenceGateway, PLAYERS_LIST_KEY, player_key

logger = logging.getLogger(__name__)


class PlayerDirectory:
    """玩家名單的讀寫"""

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    def list_ids(self) -> List[str]:
        ids, _ = self.list_ids_versioned()
        return ids

    def list_ids_versioned(self, strict: bool = False) -> Tuple[List[str], int]:
        """
        讀取玩家名單和它的版本號

        參數：
            strict: True 時名單壞掉就拋錯（寫入路徑用）

        返回：
            (玩家 ID 列表, version)

        異常：
            PersistenceError: strict 且名單不是空的卻解析不了

        注意：
            - 非 strict 時名單壞掉只記 log 並當成空名單，方便顯示
            - 寫入路徑一定要用 strict，不然會把壞掉的名單整個蓋掉
        """
        blob, version = self.gateway.get_versioned(PLAYERS_LIST_KEY)
        if not blob.strip():
            return [], version

        try:
            ids = json.loads(blob.decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            ids = None
            reason = f"Error parsing player ids: {e}"
        else:
            reason = f"players_list is not a list of ids: {ids!r}"

        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            logger.error(reason)
            if strict:
                raise PersistenceError("Stored players_list is malformed")
            return [], version
        return ids, version

    def add_id(self, player_id: str, expected_version: Optional[int] = None) -> int:
        """
        把玩家 ID 加到名單最後面

        參數：
            player_id: 新玩家 ID
            expected_version: 呼叫者先前讀到的名單版本；None 表示用現在讀到的版本

        返回：
            名單的新版本號

        異常：
            DuplicateError: ID 已經在名單裡
            WriteConflict: 名單在讀取之後被別人改過
            PersistenceError: 名單壞掉（不會覆蓋它）
        """
        ids, version = self.list_ids_versioned(strict=True)
        if player_id in ids:
            raise DuplicateError(player_id)
        if expected_version is not None and expected_version != version:
            raise WriteConflict(PLAYERS_LIST_KEY, expected_version, version)

        ids.append(player_id)
        return self.gateway.set_versioned(
            PLAYERS_LIST_KEY, json.dumps(ids).encode("utf-8"), version
        )

    def save(self, player: Player) -> None:
        blob = player.to_record().model_dump_json(by_alias=True).encode("utf-8")
        self.gateway.set_data(player_key(player.id), blob)

    def load(self, player_id: str) -> Player:
        """
        載入單一玩家

        異常：
            PlayerNotFound: 沒有這個玩家的紀錄
            DecodeError: 紀錄格式錯誤，或 role / room token 解不開
        """
        blob = self.gateway.get_data(player_key(player_id))
        if not blob:
            raise PlayerNotFound(player_id)

        try:
            record = PlayerRecord.model_validate_json(blob)
        except ValidationError as e:
            raise DecodeError(f"Malformed record for player {player_id}") from e

        player = Player.from_record(player_id, record)
        # 先解一次，壞掉的 token 在這裡就擋下來
        _ = (player.role, player.room)
        return player

    def load_all(self, player_ids: Optional[Iterable[str]] = None) -> List[Player]:
        """
        盡力載入所有玩家

        壞掉或不存在的紀錄會被跳過（記 warning），
        一個玩家資料損毀不應該讓整個名單載不出來
        """
        if player_ids is None:
            player_ids = self.list_ids()

        players = []
        for player_id in player_ids:
            try:
                players.append(self.load(player_id))
            except PlayerNotFound:
                logger.warning(f"Player {player_id} is listed but has no record, skipping")
            except DecodeError as e:
                logger.warning(f"Error parsing player data for {player_id}, skipping: {e}")
        return players

    def exists(self, player_id: str) -> bool:
        return bool(self.gateway.get_data(player_key(player_id)))

    def is_member(self, player_id: str) -> bool:
        """在名單裡而且有紀錄才算這局的玩家"""
        return player_id in self.list_ids() and self.exists(player_id)
