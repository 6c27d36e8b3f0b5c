from typing import Any


def success_response(data: Any = None, message: str | None = None) -> dict:
    return {"status": "success", "data": data, "message": message}


def error_response(message: str, data: Any = None, code: str | None = None) -> dict:
    return {"status": "error", "data": data, "message": message, "code": code}


def paginated(items: list, page: int, limit: int, total: int) -> dict:
    total_pages = (total + limit - 1) // limit if limit else 0
    return {
        "items": items,
        "pagination": {"page": page, "limit": limit, "total": total, "total_pages": total_pages},
    }
