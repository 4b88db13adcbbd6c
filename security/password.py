import bcrypt

MIN_PASSWORD_LENGTH = 8

def validate_password(plain_password: str) -> list:
    """Returns a list of problems; empty means acceptable."""
    errors = []
    if not isinstance(plain_password, str) or not plain_password:
        return ["Password is required"]
    if len(plain_password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if plain_password.isdigit() or plain_password.isalpha():
        errors.append("Password must mix letters and numbers")
    # bcrypt ignores everything past 72 bytes
    if len(plain_password.encode("utf-8")) > 72:
        errors.append("Password is too long")
    return errors

def hash_password(plain_password: str, rounds: int = 12) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")

def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False
