from __future__ import annotations

from ..extensions import db


class Product(db.Model):
    """
    Catalog entry.

    price is nullable: NULL means the product is listed but not for sale.
    image_file_name is the server-side path under the public dir;
    image_original_name is the client's file name at upload time.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("title", name="uq_products_title"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(30), nullable=False)
    category = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Integer, nullable=True, default=None)

    image_file_name = db.Column(db.String(255), nullable=False)
    image_original_name = db.Column(db.String(255), nullable=True)

    @property
    def is_for_sale(self) -> bool:
        return self.price is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "description": self.description,
            "price": self.price,
            "image": {
                "fileName": self.image_file_name,
                "originalName": self.image_original_name,
            },
        }
