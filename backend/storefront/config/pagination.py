DEFAULT_LIMIT = 50
MAX_LIMIT = 200
DEFAULT_PAGE_SIZE = 24

def normalize_pagination(limit_raw, offset_raw):
    try:
        limit = int(limit_raw) if limit_raw is not None else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(0, offset)
    return limit, offset


def normalize_page(page_raw, page_size_raw):
    """Translate storefront style page/pageSize params into (limit, offset)."""
    try:
        page = int(page_raw) if page_raw is not None else 1
        page_size = int(page_size_raw) if page_size_raw is not None else DEFAULT_PAGE_SIZE
    except ValueError:
        raise ValueError('page/pageSize must be int')
    page = max(1, page)
    page_size = max(1, min(page_size, MAX_LIMIT))
    return page_size, (page - 1) * page_size
