"""
API 層

FastAPI routers，只負責 HTTP <-> GameManager 的轉換：
- game：遊戲狀態與階段指令
- players：加入、列表、統計、揭露角色
"""
