import re


def icontains(value: str) -> dict:
    """Case-insensitive substring match on a string field."""
    return {"$regex": re.escape(value), "$options": "i"}
