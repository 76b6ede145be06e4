# Overview: Menu catalog reads (categories in menu order).

from __future__ import annotations

from ..models import Category


def list_categories() -> list[Category]:
    """Menu sections in display order (sort_order, then name)."""
    return Category.query.order_by(Category.sort_order, Category.name).all()
