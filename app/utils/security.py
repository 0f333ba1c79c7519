from passlib.context import CryptContext

# bcrypt with cost factor 10
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def verify_password(plain_password, hashed_password):
    """Checks if the typed password matches the saved hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    """Converts a plain password (e.g., '123') into a bcrypt hash."""
    return pwd_context.hash(password)
