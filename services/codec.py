"""
Codec：角色 / 房間整數值 <-> 不透明 token

格式：「FHE-」+ base64(十進位字串)
例如 encode(1) -> "FHE-MQ=="

注意：
- 這只是可逆編碼，不是加密，任何人都能解回來
- 沒有前綴的字串當成舊資料，直接當數字解析（"2" -> 2）
"""
import base64
import binascii

from core.exceptions import DecodeError

TOKEN_PREFIX = "FHE-"


def encode(value: int) -> str:
    """
    把小的非負整數編碼成 token

    範例：
        encode(2) -> "FHE-Mg=="
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Only non-negative integers can be encoded, got {value!r}")
    # int() 先把 IntEnum 轉成純數字
    payload = base64.b64encode(str(int(value)).encode("ascii")).decode("ascii")
    return f"{TOKEN_PREFIX}{payload}"


def decode(token: str) -> int:
    """
    把 token 解回整數

    規則：
    - 有 FHE- 前綴：base64 解碼後當數字解析
    - 沒有前綴：整個字串當數字解析（舊資料）
    - 數字必須是整數（"2.0" 可以，"2.5" 不行）

    異常：
        DecodeError: 不是 encode() 的產物，也不是純數字
    """
    if not isinstance(token, str):
        raise DecodeError(f"Token must be a string, got {type(token).__name__}")

    raw = token
    if token.startswith(TOKEN_PREFIX):
        try:
            raw = base64.b64decode(token[len(TOKEN_PREFIX):], validate=True).decode("ascii")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise DecodeError(f"Malformed token {token!r}") from e

    return _parse_number(raw, token)


def _parse_number(raw: str, token: str) -> int:
    try:
        number = float(raw.strip())
    except ValueError as e:
        raise DecodeError(f"Token {token!r} does not hold a number") from e

    if not number.is_integer():
        raise DecodeError(f"Token {token!r} does not hold an integer")
    return int(number)
