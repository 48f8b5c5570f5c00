"""
Game State Machine：集中管理所有階段轉換

狀態：
    lobby -> round1 -> round2 -> round3 -> ended

指令與允許的階段：
    START           lobby
    ELECT_LEADER    round1 / round2 / round3
    SELECT_HOSTAGE  round1 / round2 / round3
    ADVANCE         round1 / round2 / round3（round3 之後直接 ended）

全部都是純函式：(目前狀態, 指令, 參數) -> 新狀態 或 InvalidPhase
讀寫儲存層是 GameManager 的事，這裡不碰
"""
from typing import Iterable, Optional
import logging

from models import Command, Phase, RoomColor, ROUND_PHASES, FINAL_ROUND, phase_for_round
from schemas import GameState, Player
from core.exceptions import InvalidPhase
from services.win_service import evaluate

logger = logging.getLogger(__name__)


def _evolve(state: GameState, **changes) -> GameState:
    # model_copy 不會跑 validator，所以重新建立一個
    return GameState.model_validate({**state.model_dump(), **changes})


class GameStateMachine:
    """遊戲階段狀態機"""

    ALLOWED_PHASES = {
        Command.START: (Phase.LOBBY,),
        Command.ELECT_LEADER: ROUND_PHASES,
        Command.SELECT_HOSTAGE: ROUND_PHASES,
        Command.ADVANCE: ROUND_PHASES,
    }

    @classmethod
    def can_apply(cls, state: GameState, command: Command) -> bool:
        return state.phase in cls.ALLOWED_PHASES[command]

    @classmethod
    def transition(cls, state: GameState, command: Command, **params) -> GameState:
        """
        套用一個指令

        參數：
            state: 目前狀態
            command: Command enum
            **params: 指令參數
                ELECT_LEADER: room (RoomColor), player_id
                SELECT_HOSTAGE: player_id
                ADVANCE: players（最後一回合算勝負用）

        返回：
            新的 GameState（原本的 state 不會被修改）

        異常：
            InvalidPhase: 目前階段不允許這個指令
        """
        if not cls.can_apply(state, command):
            raise InvalidPhase(state.phase, command.value)

        if command == Command.START:
            new_state = cls._start(state)
        elif command == Command.ELECT_LEADER:
            new_state = cls._elect_leader(state, params["room"], params["player_id"])
        elif command == Command.SELECT_HOSTAGE:
            new_state = cls._select_hostage(state, params["player_id"])
        else:
            new_state = cls._advance(state, params.get("players"))

        logger.info(
            f"{command.value}: {state.phase.value}/{state.current_round} -> "
            f"{new_state.phase.value}/{new_state.current_round}"
        )
        return new_state

    @staticmethod
    def _start(state: GameState) -> GameState:
        return _evolve(state, phase=Phase.ROUND1, current_round=1)

    @staticmethod
    def _elect_leader(state: GameState, room: RoomColor, player_id: str) -> GameState:
        # 不檢查玩家是不是真的在這個房間（由呼叫端負責）
        field = "blue_room_leader" if RoomColor(room) == RoomColor.BLUE else "red_room_leader"
        return _evolve(state, **{field: player_id})

    @staticmethod
    def _select_hostage(state: GameState, player_id: str) -> GameState:
        # 不要求兩邊 leader 都選好了
        return _evolve(state, hostage=player_id)

    @staticmethod
    def _advance(state: GameState, players: Optional[Iterable[Player]]) -> GameState:
        if state.current_round == FINAL_ROUND:
            return _evolve(state, phase=Phase.ENDED, winner=evaluate(players or []))

        next_round = state.current_round + 1
        return _evolve(
            state,
            phase=phase_for_round(next_round),
            current_round=next_round,
            blue_room_leader=None,
            red_room_leader=None,
            hostage=None,
        )
