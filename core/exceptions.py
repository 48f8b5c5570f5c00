"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理
"""


class TwoRoomsException(Exception):
    """所有遊戲異常的基類"""
    pass


# ============ 驗證相關異常（寫入前就檢查，不會改動任何資料） ============

class IdentityRequired(TwoRoomsException):
    """沒有呼叫者身分（錢包未連線）"""
    def __init__(self, message="Please connect wallet first"):
        super().__init__(message)


class NameRequired(TwoRoomsException):
    """玩家名稱是空的"""
    def __init__(self, message="Please enter your name"):
        super().__init__(message)


class DuplicateError(TwoRoomsException):
    """玩家 ID 重複"""
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player id {player_id} already exists")


class AddressAlreadyJoined(DuplicateError):
    """同一個錢包地址只能加入一次"""
    def __init__(self, address, player_id):
        self.address = address
        TwoRoomsException.__init__(
            self, f"Address {address} already joined as player {player_id}"
        )
        self.player_id = player_id


# ============ 狀態轉換異常 ============

class InvalidPhase(TwoRoomsException):
    """目前階段不允許這個操作"""
    def __init__(self, phase, action):
        self.phase = phase
        self.action = action
        super().__init__(f"Cannot {action} during phase {getattr(phase, 'value', phase)}")


# ============ 查詢相關異常 ============

class NotFoundError(TwoRoomsException):
    """資料不存在"""
    pass


class PlayerNotFound(NotFoundError):
    """玩家不存在"""
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


# ============ 資料格式異常 ============

class DecodeError(TwoRoomsException):
    """角色 / 房間 token 或玩家紀錄無法解析"""
    pass


# ============ 儲存層異常 ============

class PersistenceError(TwoRoomsException):
    """Gateway 讀寫失敗（原樣往上拋，核心不重試）"""
    pass


class WriteConflict(PersistenceError):
    """樂觀鎖版本不符：別人先寫入了"""
    def __init__(self, key, expected_version, actual_version):
        self.key = key
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Write conflict on {key}: expected version {expected_version}, "
            f"found {actual_version}"
        )
