"""
Game Manager：管理一局遊戲的完整生命週期

職責：
1. 玩家加入（角色 / 房間分配）
2. 開始遊戲、選 leader、選人質、推進回合
3. 查詢遊戲狀態與玩家列表
4. 揭露自己的角色（需要簽名）

流程（每個操作都一樣）：
    讀取 -> 驗證 -> 狀態機轉換 -> 寫回

原則：
- 不保留記憶體狀態，每次都從 Gateway 重新讀取
- 所有階段變更都經過 GameStateMachine
- 驗證失敗時不寫入任何東西
- 寫入用樂觀鎖，版本衝突時整個流程重跑（@retry_on_conflict）
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging
import random

from pydantic import ValidationError

from models import Command, Phase, Role, RoomColor, FINAL_ROUND
from schemas import GameState, Player
from core.exceptions import (
    AddressAlreadyJoined,
    DuplicateError,
    IdentityRequired,
    NameRequired,
    NotFoundError,
    PersistenceError,
    PlayerNotFound,
)
from core.gateway import PersistenceGateway, GAME_STATE_KEY
from core.identity import IdentityProvider, build_disclosure_message
from core.locks import retry_on_conflict
from core.player_directory import PlayerDirectory
from core.state_machine import GameStateMachine
from database import get_settings
from services import codec
from services.role_service import assign_role, assign_room, generate_player_id
from services.roster_service import find_host, find_viewer, is_current_viewer

logger = logging.getLogger(__name__)


@dataclass
class JoinResult:
    """加入成功後回給玩家的資料（包含自己的明文角色 / 房間）"""
    player: Player
    role: Role
    room: RoomColor


@dataclass
class RoleReveal:
    role: Role
    room: RoomColor


class GameManager:
    """
    一局遊戲的操作入口

    參數：
        gateway: Persistence Gateway
        rng: 角色 / 房間分配用的亂數來源（測試時注入）
        id_factory: 玩家 ID 產生器
        max_write_retries: 版本衝突重試次數，預設用 Settings
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        rng: Optional[random.Random] = None,
        id_factory=None,
        max_write_retries: Optional[int] = None
    ):
        settings = get_settings()
        self.gateway = gateway
        self.directory = PlayerDirectory(gateway)
        self.rng = rng or random.Random()
        self.id_factory = id_factory or generate_player_id
        self.max_write_retries = (
            settings.max_write_retries if max_write_retries is None else max_write_retries
        )
        self.min_players_to_start = settings.min_players_to_start

    # ============ 讀取 ============

    def get_state(self) -> GameState:
        """
        取得目前遊戲狀態

        儲存層不可用時返回初始狀態（lobby），不拋錯
        """
        if not self.gateway.is_available():
            logger.warning("Storage unavailable, returning initial game state")
            return GameState()
        state, _ = self._load_state()
        return state

    def get_players(self) -> List[Player]:
        """取得所有玩家（壞掉的紀錄會被跳過）"""
        if not self.gateway.is_available():
            logger.warning("Storage unavailable, returning empty roster")
            return []
        return self.directory.load_all()

    def can_start(self, identity: Optional[IdentityProvider]) -> bool:
        """
        前端用來決定要不要顯示「開始遊戲」

        條件：呼叫者是 Host、還在 lobby、人數 >= min_players_to_start
        注意：只是建議，start_game() 本身不檢查
        """
        address = identity.caller_identity() if identity else None
        if not address or self.get_state().phase != Phase.LOBBY:
            return False
        players = self.get_players()
        host = find_host(players)
        return (
            host is not None
            and is_current_viewer(host, address)
            and len(players) >= self.min_players_to_start
        )

    # ============ 玩家加入 ============

    def join(self, name: str, identity: Optional[IdentityProvider]) -> JoinResult:
        """
        玩家加入遊戲

        前置條件：
        1. 必須有呼叫者身分（錢包地址）
        2. 名稱去掉空白後不能是空的

        注意：
            任何階段都可以加入（維持原本行為），但不會改動 GameState

        返回：
            JoinResult（玩家 + 明文角色 / 房間）

        異常：
            IdentityRequired: 沒有錢包地址
            NameRequired: 名稱是空的
            DuplicateError: 玩家 ID 碰撞
            AddressAlreadyJoined: 這個錢包地址已經加入過（DuplicateError 子類別）
            PersistenceError: 儲存層讀寫失敗
        """
        address = identity.caller_identity() if identity else None
        if not address:
            raise IdentityRequired()

        name = (name or "").strip()
        if not name:
            raise NameRequired()

        self._require_available()

        # ID 只產生一次，重試時沿用
        player_id = self.id_factory()
        if self.directory.exists(player_id):
            raise DuplicateError(player_id)

        return self._register(player_id, name, address)

    @retry_on_conflict
    def _register(self, player_id: str, name: str, address: str) -> JoinResult:
        # strict：名單壞掉就停，不能用空名單把它蓋掉
        ids, version = self.directory.list_ids_versioned(strict=True)
        if player_id in ids:
            raise DuplicateError(player_id)

        existing = find_viewer(self.directory.load_all(ids), address)
        if existing is not None:
            raise AddressAlreadyJoined(address, existing.id)

        player_count = len(ids)
        role = assign_role(player_count, self.rng)
        room = assign_room(self.rng)

        player = Player(
            id=player_id,
            encrypted_role=codec.encode(role.value),
            encrypted_room=codec.encode(room.value),
            is_host=player_count == 0,
            address=address,
            name=name,
        )

        # 先搶名單（CAS），成功了才寫玩家紀錄，失敗的加入不會留下孤兒紀錄
        self.directory.add_id(player_id, expected_version=version)
        self.directory.save(player)

        logger.info(
            f"Player {player_id} ({name}) joined as #{player_count + 1}"
            f"{' (host)' if player.is_host else ''}"
        )
        return JoinResult(player=player, role=role, room=room)

    # ============ 狀態轉換 ============

    @retry_on_conflict
    def start_game(self, identity: Optional[IdentityProvider] = None) -> GameState:
        """
        開始遊戲（lobby -> round1）

        注意：
            - 不檢查人數（由前端用 can_start 決定）
            - identity 只用來記 log

        異常：
            InvalidPhase: 不是 lobby
        """
        caller = identity.caller_identity() if identity else None
        state = self._apply(Command.START)
        logger.info(f"Game started by {caller or 'unknown caller'}")
        return state

    @retry_on_conflict
    def elect_leader(self, room, player_id: str) -> GameState:
        """
        選出某個房間的 leader

        參數：
            room: RoomColor 或 "blue" / "red"
            player_id: 被選的玩家

        注意：
            不檢查玩家是否真的在這個房間（已知的寬鬆處，維持原本行為）

        異常：
            InvalidPhase: 不在 round1 ~ round3
            PlayerNotFound: 沒有這個玩家
        """
        room = RoomColor.from_label(room)
        return self._apply(Command.ELECT_LEADER, room=room, player_id=player_id)

    @retry_on_conflict
    def select_hostage(self, player_id: str) -> GameState:
        """
        選出人質

        注意：
            不要求兩邊 leader 都已經選好（由前端控制順序）

        異常：
            InvalidPhase: 不在 round1 ~ round3
            PlayerNotFound: 沒有這個玩家
        """
        return self._apply(Command.SELECT_HOSTAGE, player_id=player_id)

    @retry_on_conflict
    def advance_round(self) -> GameState:
        """
        推進回合

        - round1 / round2 -> 下一回合，清掉 leader 與人質
        - round3 -> ended，並計算勝負

        異常：
            InvalidPhase: lobby 或 ended
        """
        return self._apply(Command.ADVANCE)

    # ============ 揭露角色 ============

    def reveal_role(self, identity: Optional[IdentityProvider]) -> RoleReveal:
        """
        揭露呼叫者自己的角色和房間

        流程：
        1. 找到 address 相同的玩家
        2. 請錢包簽署揭露訊息
        3. 簽名成功才解碼

        異常：
            IdentityRequired: 沒有錢包地址，或沒有簽名
            NotFoundError: 這個地址沒有加入遊戲
        """
        address = identity.caller_identity() if identity else None
        if not address:
            raise IdentityRequired()

        viewer = find_viewer(self.get_players(), address)
        if viewer is None:
            raise NotFoundError(f"No player joined with address {address}")

        signature = identity.request_signature(build_disclosure_message())
        if not signature:
            raise IdentityRequired("Signature is required to reveal your role")

        logger.info(f"Player {viewer.id} revealed their own role")
        return RoleReveal(role=viewer.role, room=viewer.room)

    # ============ 內部 ============

    def _require_available(self) -> None:
        if not self.gateway.is_available():
            raise PersistenceError("Storage is not available")

    def _load_state(self) -> Tuple[GameState, int]:
        blob, version = self.gateway.get_versioned(GAME_STATE_KEY)
        if not blob.strip():
            return GameState(), version

        try:
            return GameState.from_blob(blob), version
        except ValidationError as e:
            logger.error(f"Error parsing game state: {e}")
            raise PersistenceError("Stored game state is malformed") from e

    def _apply(self, command: Command, **params) -> GameState:
        """
        讀取 -> 轉換 -> 寫回

        轉換前先檢查階段（InvalidPhase 優先），
        寫回前檢查被引用的玩家在名單裡而且有紀錄（沒列在名單上的紀錄不算玩家）
        """
        self._require_available()
        state, version = self._load_state()

        if command == Command.ADVANCE and state.current_round == FINAL_ROUND:
            params["players"] = self.directory.load_all()

        new_state = GameStateMachine.transition(state, command, **params)

        player_id = params.get("player_id")
        if player_id is not None and not self.directory.is_member(player_id):
            raise PlayerNotFound(player_id)

        self.gateway.set_versioned(GAME_STATE_KEY, new_state.to_blob(), version)
        return new_state
