from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi.security import OAuth2PasswordBearer

from core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Login form posts email as `username`.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Signs a bearer token for the claims in `data`.

    `sub` is mandatory and holds the account email; `role` travels alongside
    so the UI can switch layouts without asking the API. Tokens expire after
    ACCESS_TOKEN_EXPIRE_MINUTES unless `expires_delta` says otherwise.
    """
    if "sub" not in data:
        raise ValueError("Token claims need a 'sub' (account email).")

    lifetime = expires_delta if expires_delta else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_token_for_email(token: str) -> str:
    """Returns the account email a token was issued for. Raises JWTError on bad or expired tokens."""
    claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    email = claims.get("sub")
    if not email:
        raise JWTError("Token carries no subject.")
    return email


if __name__ == '__main__':
    hashed = get_password_hash("demoHub_Password123!")
    print(f"bcrypt hash: {hashed}")
    print(f"matches: {verify_password('demoHub_Password123!', hashed)}")

    token = create_access_token({"sub": "seller@example.com", "role": "sales"})
    print(f"token: {token}")
    print(f"subject: {decode_token_for_email(token)}")
