"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- codec：角色 / 房間 token 的編碼與解碼
- role_service：角色與房間分配、玩家 ID
- win_service：勝負判定
- roster_service：玩家列表的衍生資料（分房、搜尋、統計）
"""
