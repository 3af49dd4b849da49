from .config import settings

def normalize_user_id(user_id: str | None) -> str:
    """Partition key for a user: trimmed, lowercased, falling back to the guest partition."""
    if not isinstance(user_id, str):
        return settings.DEFAULT_USER_ID
    return user_id.strip().lower() or settings.DEFAULT_USER_ID
