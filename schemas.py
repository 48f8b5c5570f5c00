"""
Pydantic schemas

兩類：
1. 儲存格式：PlayerRecord / GameState（JSON blob，欄位名稱是 camelCase）
2. API request / response
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import Phase, Role, RoomColor, Team, FINAL_ROUND, phase_for_round
from core.exceptions import DecodeError
from services import codec


# ============ 儲存格式 ============

class PlayerRecord(BaseModel):
    """player_<id> 存的內容，role / room 是 codec token"""
    model_config = ConfigDict(populate_by_name=True)

    role: str
    room: str
    is_host: bool = Field(alias="isHost")
    address: str
    name: str


class Player(BaseModel):
    """載入後的玩家（id 來自 players_list，其餘來自 PlayerRecord）"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    encrypted_role: str = Field(alias="encryptedRole")
    encrypted_room: str = Field(alias="encryptedRoom")
    is_host: bool = Field(alias="isHost")
    address: str
    name: str

    @classmethod
    def from_record(cls, player_id: str, record: PlayerRecord) -> "Player":
        return cls(
            id=player_id,
            encrypted_role=record.role,
            encrypted_room=record.room,
            is_host=record.is_host,
            address=record.address,
            name=record.name,
        )

    def to_record(self) -> PlayerRecord:
        return PlayerRecord(
            role=self.encrypted_role,
            room=self.encrypted_room,
            is_host=self.is_host,
            address=self.address,
            name=self.name,
        )

    @property
    def role(self) -> Role:
        """
        解碼後的角色

        異常：
            DecodeError: token 壞掉或不是合法角色值
        """
        value = codec.decode(self.encrypted_role)
        try:
            return Role(value)
        except ValueError as e:
            raise DecodeError(f"Unknown role value {value} for player {self.id}") from e

    @property
    def room(self) -> RoomColor:
        """解碼後的房間（異常同 role）"""
        value = codec.decode(self.encrypted_room)
        try:
            return RoomColor(value)
        except ValueError as e:
            raise DecodeError(f"Unknown room value {value} for player {self.id}") from e


class GameState(BaseModel):
    """
    game_state 存的內容

    不變式（每次建立都會檢查）：
    - phase == lobby  <=>  current_round == 0
    - phase == roundN  =>  current_round == N
    - phase == ended   =>  current_round == 3
    - winner 有值      <=>  phase == ended
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    phase: Phase = Phase.LOBBY
    current_round: int = Field(0, alias="currentRound", ge=0, le=FINAL_ROUND)
    blue_room_leader: Optional[str] = Field(None, alias="blueRoomLeader")
    red_room_leader: Optional[str] = Field(None, alias="redRoomLeader")
    hostage: Optional[str] = None
    winner: Optional[Team] = None

    @model_validator(mode="after")
    def check_invariants(self) -> "GameState":
        if self.phase == Phase.ENDED:
            if self.current_round != FINAL_ROUND:
                raise ValueError(f"ended game must be at round {FINAL_ROUND}")
            if self.winner is None:
                raise ValueError("ended game must have a winner")
        else:
            if phase_for_round(self.current_round) != self.phase:
                raise ValueError(
                    f"phase {self.phase.value} does not match round {self.current_round}"
                )
            if self.winner is not None:
                raise ValueError("winner is only set once the game has ended")
        return self

    def to_blob(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

    @classmethod
    def from_blob(cls, blob: bytes) -> "GameState":
        return cls.model_validate_json(blob)


# ============ API ============

class ActionResponse(BaseModel):
    status: str = "success"
    message: str


class PlayerJoin(BaseModel):
    name: str


class JoinResponse(ActionResponse):
    player_id: str
    is_host: bool
    role: Literal["president", "bomber", "civilian"]
    room: Literal["blue", "red"]


class LeaderElect(BaseModel):
    room: Literal["blue", "red"]
    player_id: str


class HostageSelect(BaseModel):
    player_id: str


class RevealRequest(BaseModel):
    signature: str


class RoleRevealResponse(BaseModel):
    role: Literal["president", "bomber", "civilian"]
    room: Literal["blue", "red"]


class PlayerResponse(BaseModel):
    id: str
    name: str
    address: str
    is_host: bool
    is_you: bool
    encrypted_role: str
    room: Optional[Literal["blue", "red"]] = None


class PlayerListResponse(BaseModel):
    players: List[PlayerResponse]


class GameStateResponse(BaseModel):
    phase: Phase
    current_round: int
    blue_room_leader: Optional[str] = None
    red_room_leader: Optional[str] = None
    hostage: Optional[str] = None
    winner: Optional[Team] = None
    is_host: bool = False
    can_start: bool = False


class StatsResponse(BaseModel):
    total: int
    blue: int
    red: int
