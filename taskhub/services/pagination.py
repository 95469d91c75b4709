import math

from taskhub.schemas.common import PageInfo, PaginationParams
from taskhub.utils.errors import ValidationError


def resolve_order_by(sort_fields: dict, pagination: PaginationParams):
    """Map the camelCase `sortBy` onto a whitelisted column and direction."""
    column = sort_fields.get(pagination.sort_by)
    if column is None:
        raise ValidationError({
            "sortBy": f"Must be one of: {', '.join(sorted(sort_fields))}",
        })
    return column.asc() if pagination.sort_order == "asc" else column.desc()


def build_page_info(pagination: PaginationParams, total: int) -> PageInfo:
    return PageInfo(
        page=pagination.page,
        limit=pagination.limit,
        total=total,
        pages=math.ceil(total / pagination.limit),
    )
