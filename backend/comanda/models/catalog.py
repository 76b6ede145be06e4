from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Category(db.Model):
    """Menu section (drinks, mains, desserts...). Listed by sort_order."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sort_order": self.sort_order,
        }


class Product(db.Model):
    """
    Menu product and its stock counters.

    STOCK MODEL:
    - stock_management is opt-in; untracked products never touch the ledger.
    - stock_quantity: units available to new orders.
    - stock_reserved: units held by orders that are not yet ready.
    - Both counters are mutated only by inventory_service, never by catalog edits.

    version_id_col turns concurrent read-modify-write on the counters into a
    StaleDataError instead of a lost update.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_quantity_nonneg"),
        db.CheckConstraint("stock_reserved >= 0", name="ck_products_stock_reserved_nonneg"),
        db.Index("ix_products_category_name", "category_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    is_available = db.Column(db.Boolean, nullable=False, default=True)

    stock_management = db.Column(db.Boolean, nullable=False, default=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    stock_reserved = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<Product id={self.id} name={self.name!r} "
            f"stock={self.stock_quantity} reserved={self.stock_reserved}>"
        )

    @property
    def is_low_stock(self) -> bool:
        if not self.stock_management or self.min_stock is None:
            return False
        return self.stock_quantity <= self.min_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "is_available": self.is_available,
            "stock_management": self.stock_management,
            "stock_quantity": self.stock_quantity,
            "stock_reserved": self.stock_reserved,
            "min_stock": self.min_stock,
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
