"""
Player API Endpoints

職責：
1. 玩家加入遊戲
2. 查詢玩家列表（可搜尋）與分房統計
3. 揭露自己的角色
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from schemas import (
    JoinResponse,
    PlayerJoin,
    PlayerListResponse,
    PlayerResponse,
    RevealRequest,
    RoleRevealResponse,
    StatsResponse,
)
from core.game_manager import GameManager
from core.identity import StaticIdentity
from core.exceptions import (
    DecodeError,
    DuplicateError,
    IdentityRequired,
    NameRequired,
    NotFoundError,
    PersistenceError,
    WriteConflict,
)
from services.roster_service import is_current_viewer, room_statistics, search_players
from api.deps import get_identity, get_manager

router = APIRouter(prefix="/api/players", tags=["players"])
logger = logging.getLogger(__name__)


@router.get("", response_model=PlayerListResponse)
def list_players(
    search: Optional[str] = Query(None),
    manager: GameManager = Depends(get_manager),
    identity: StaticIdentity = Depends(get_identity)
):
    """
    玩家列表

    參數：
        search: 依名稱或地址搜尋（不分大小寫）

    返回：
        每個玩家的公開資料；房間是明文，角色只給 token
    """
    try:
        players = manager.get_players()
        if search:
            players = search_players(players, search)

        address = identity.caller_identity()
        result = []
        for player in players:
            try:
                room = player.room.label
            except DecodeError:
                room = None
            result.append(PlayerResponse(
                id=player.id,
                name=player.name,
                address=player.address,
                is_host=player.is_host,
                is_you=is_current_viewer(player, address),
                encrypted_role=player.encrypted_role,
                room=room
            ))

        return PlayerListResponse(players=result)

    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to list players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/stats", response_model=StatsResponse)
def get_stats(manager: GameManager = Depends(get_manager)):
    """分房統計：總人數 / 藍房 / 紅房"""
    try:
        return StatsResponse(**room_statistics(manager.get_players()))

    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to compute stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/join", response_model=JoinResponse)
def join_game(
    player_data: PlayerJoin,
    manager: GameManager = Depends(get_manager),
    identity: StaticIdentity = Depends(get_identity)
):
    """
    加入遊戲

    前置條件：
    - 必須帶 X-Wallet-Address
    - 名稱不能是空的

    返回：
        新玩家資訊，以及只給本人看的角色 / 房間
    """
    try:
        result = manager.join(player_data.name, identity)

        return JoinResponse(
            message="Joined game with encrypted role!",
            player_id=result.player.id,
            is_host=result.player.is_host,
            role=result.role.name.lower(),
            room=result.room.label
        )

    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except NameRequired as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DuplicateError, WriteConflict) as e:
        raise HTTPException(status_code=409, detail=f"Join failed: {e}")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Join failed: {e}")
    except Exception as e:
        logger.error(f"Failed to join game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/me/reveal", response_model=RoleRevealResponse)
def reveal_my_role(
    data: RevealRequest,
    manager: GameManager = Depends(get_manager),
    identity: StaticIdentity = Depends(get_identity)
):
    """
    揭露自己的角色

    前置條件：
    - 必須帶 X-Wallet-Address
    - body 裡要有錢包簽名
    """
    try:
        signed = StaticIdentity(identity.caller_identity(), data.signature)
        reveal = manager.reveal_role(signed)

        return RoleRevealResponse(
            role=reveal.role.name.lower(),
            room=reveal.room.label
        )

    except IdentityRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to reveal role: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
