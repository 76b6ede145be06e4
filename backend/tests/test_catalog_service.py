from comanda.models import Category
from comanda.services import catalog_service


def test_categories_in_menu_order(db_session):
    db_session.add_all([
        Category(name="Desserts", sort_order=3),
        Category(name="Mains", sort_order=1),
        Category(name="Drinks", sort_order=1),
        Category(name="Starters", sort_order=0),
    ])
    db_session.commit()

    names = [c.name for c in catalog_service.list_categories()]

    assert names == ["Starters", "Drinks", "Mains", "Desserts"]


def test_no_categories(db_session):
    assert catalog_service.list_categories() == []
