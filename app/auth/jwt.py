import os
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError

# Tokens are issued by the external auth provider; this service only verifies
# them. create_access_token exists for local development and tests.


def create_access_token(subject: str, email: str | None = None) -> str:
    secret = os.getenv("JWT_SECRET", "dev_secret_change_me")
    alg = os.getenv("JWT_ALG", "HS256")
    exp_min = int(os.getenv("ACCESS_TOKEN_EXPIRE_MIN", "60"))

    now = datetime.now(timezone.utc)

    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_min)).timestamp()),
    }
    if email:
        payload["email"] = email

    return jwt.encode(payload, secret, algorithm=alg)


def decode_access_token(token: str) -> dict:
    secret = os.getenv("JWT_SECRET", "dev_secret_change_me")
    alg = os.getenv("JWT_ALG", "HS256")

    try:
        return jwt.decode(token, secret, algorithms=[alg])
    except JWTError:
        raise ValueError("Invalid token")
