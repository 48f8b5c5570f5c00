"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：純函式的階段轉換
- Manager：讀取 -> 轉換 -> 寫回 的完整流程
- Player Directory：玩家名單與玩家紀錄
- Gateway / Locks：key-value 儲存與樂觀鎖
"""
