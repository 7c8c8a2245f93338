# yapluca/utils.py
import os
from datetime import datetime, timedelta, timezone
import bcrypt
from jose import jwt

SECRET = os.environ.get("YAPLUCA_SIGN_KEY", "dev-secret-key")
JWT_ALG = "HS256"
ID_TOKEN_TTL = timedelta(hours=1)

def sign_token(payload: dict) -> str:
    """Return a compact JWT for payload."""
    token = jwt.encode(payload, SECRET, algorithm=JWT_ALG)
    return token

def verify_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET, algorithms=[JWT_ALG])
    except Exception:
        return {}

def issue_id_token(uid: str, email: str) -> str:
    issued_at = datetime.now(timezone.utc)
    return sign_token({
        "sub": uid,
        "email": email,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + ID_TOKEN_TTL).timestamp()),
    })

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
