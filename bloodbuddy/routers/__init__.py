from typing import Any

from bloodbuddy.models import Pagination


def ok(message: str, data: Any = None) -> dict:
    return {"success": True, "message": message, "data": data}


def paginated(message: str, items: list, page: int, limit: int, total: int) -> dict:
    return ok(message, {
        "data": items,
        "pagination": Pagination.build(page, limit, total)
    })
