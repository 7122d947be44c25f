from pydantic import BaseModel


class AdminPaginationMeta(BaseModel):
    total_items: int
    total_pages: int
    page: int
    limit: int



def clamp_page(page: int, limit: int, *, max_limit: int = 100) -> tuple[int, int]:
    return max(1, int(page)), max(1, min(int(limit), max_limit))


def page_meta(total_items: int, *, page: int, limit: int) -> AdminPaginationMeta:
    total_pages = max(1, (total_items + limit - 1) // limit) if total_items else 1
    return AdminPaginationMeta(total_items=total_items, total_pages=total_pages, page=page, limit=limit)
