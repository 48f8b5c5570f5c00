"""
Game API Endpoints

職責：
1. 查詢遊戲狀態
2. 開始遊戲（Host）
3. 選 leader、選人質
4. 推進回合（Host）

所有業務邏輯都在 GameManager，這裡只負責把異常轉成 HTTP 狀態碼
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import (
    ActionResponse,
    GameStateResponse,
    HostageSelect,
    LeaderElect,
)
from core.game_manager import GameManager
from core.identity import StaticIdentity
from core.exceptions import (
    IdentityRequired,
    InvalidPhase,
    NotFoundError,
    PersistenceError,
    WriteConflict,
)
from services.roster_service import find_host, is_current_viewer
from api.deps import get_identity, get_manager

router = APIRouter(prefix="/api/game", tags=["game"])
logger = logging.getLogger(__name__)


@router.get("/state", response_model=GameStateResponse)
def get_game_state(
    manager: GameManager = Depends(get_manager),
    identity: StaticIdentity = Depends(get_identity)
):
    """
    取得目前遊戲狀態

    返回：
        - phase / current_round / leaders / hostage / winner
        - is_host: 呼叫者是不是 Host
        - can_start: 是否該顯示「開始遊戲」（Host + lobby + 人數足夠）
    """
    try:
        state = manager.get_state()
        host = find_host(manager.get_players())

        return GameStateResponse(
            phase=state.phase,
            current_round=state.current_round,
            blue_room_leader=state.blue_room_leader,
            red_room_leader=state.red_room_leader,
            hostage=state.hostage,
            winner=state.winner,
            is_host=host is not None and is_current_viewer(host, identity.caller_identity()),
            can_start=manager.can_start(identity)
        )

    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to load game state: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/start", response_model=ActionResponse)
def start_game(
    manager: GameManager = Depends(get_manager),
    identity: StaticIdentity = Depends(get_identity)
):
    """
    開始遊戲（Host endpoint）

    前置條件：
    - 必須有錢包地址
    - 遊戲還在 lobby

    效果：
    - lobby -> round1
    """
    try:
        if not identity.caller_identity():
            raise IdentityRequired()

        manager.start_game(identity)
        return ActionResponse(message="Game started with encrypted roles!")

    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except InvalidPhase as e:
        raise HTTPException(status_code=400, detail=f"Game start failed: {e}")
    except WriteConflict as e:
        raise HTTPException(status_code=409, detail=f"Game start failed: {e}")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Game start failed: {e}")
    except Exception as e:
        logger.error(f"Failed to start game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/leader", response_model=ActionResponse)
def elect_leader(
    data: LeaderElect,
    manager: GameManager = Depends(get_manager),
    identity: StaticIdentity = Depends(get_identity)
):
    """
    選出房間 leader

    參數：
        data.room: "blue" / "red"
        data.player_id: 被選的玩家

    注意：
        不檢查玩家是否在該房間
    """
    try:
        if not identity.caller_identity():
            raise IdentityRequired()

        manager.elect_leader(data.room, data.player_id)
        return ActionResponse(message="Leader elected!")

    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except InvalidPhase as e:
        raise HTTPException(status_code=400, detail=f"Election failed: {e}")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Election failed: {e}")
    except WriteConflict as e:
        raise HTTPException(status_code=409, detail=f"Election failed: {e}")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Election failed: {e}")
    except Exception as e:
        logger.error(f"Failed to elect leader: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/hostage", response_model=ActionResponse)
def select_hostage(
    data: HostageSelect,
    manager: GameManager = Depends(get_manager),
    identity: StaticIdentity = Depends(get_identity)
):
    """選出人質（被交換到另一個房間的玩家）"""
    try:
        if not identity.caller_identity():
            raise IdentityRequired()

        manager.select_hostage(data.player_id)
        return ActionResponse(message="Hostage selected!")

    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except InvalidPhase as e:
        raise HTTPException(status_code=400, detail=f"Selection failed: {e}")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Selection failed: {e}")
    except WriteConflict as e:
        raise HTTPException(status_code=409, detail=f"Selection failed: {e}")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Selection failed: {e}")
    except Exception as e:
        logger.error(f"Failed to select hostage: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/advance", response_model=ActionResponse)
def advance_round(
    manager: GameManager = Depends(get_manager),
    identity: StaticIdentity = Depends(get_identity)
):
    """
    推進回合（Host endpoint）

    效果：
    - round1 / round2 -> 下一回合
    - round3 -> ended（計算勝負）
    """
    try:
        if not identity.caller_identity():
            raise IdentityRequired()

        state = manager.advance_round()
        if state.winner is not None:
            logger.info(f"Game ended, winner: {state.winner.value}")
        return ActionResponse(message="Round advanced!")

    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except InvalidPhase as e:
        raise HTTPException(status_code=400, detail=f"Round advance failed: {e}")
    except WriteConflict as e:
        raise HTTPException(status_code=409, detail=f"Round advance failed: {e}")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Round advance failed: {e}")
    except Exception as e:
        logger.error(f"Failed to advance round: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
