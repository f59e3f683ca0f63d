import math
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from app.models.product import Product, ProductCondition, ProductStatus
from app.storage.image_storage import ImageStorage, storage

# Deleted listings are never listed, even for status=all
ALL_VISIBLE_STATUSES = [
    ProductStatus.ACTIVE.value,
    ProductStatus.RESERVED.value,
    ProductStatus.SOLD.value,
]

SORT_ORDERS = {
    "newest": (Product.created_at.desc(), Product.id.desc()),
    "oldest": (Product.created_at.asc(), Product.id.asc()),
    "price-asc": (Product.price.asc(), Product.created_at.desc()),
    "price-desc": (Product.price.desc(), Product.created_at.desc()),
}


class ProductFilters(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    status: Literal["active", "reserved", "sold", "deleted", "all"] = "active"
    category_id: Optional[str] = None
    min_price: Optional[int] = Field(default=None, ge=0)
    max_price: Optional[int] = Field(default=None, ge=0)
    condition: Optional[List[ProductCondition]] = None
    sort_by: Literal["newest", "oldest", "price-asc", "price-desc"] = "newest"

    def statuses(self) -> List[str]:
        if self.status == "all":
            return ALL_VISIBLE_STATUSES
        return [self.status]


class ProductService:
    @staticmethod
    def get_user_products(
        db: Session,
        user_id: str,
        filters: ProductFilters,
        images: ImageStorage = storage,
    ) -> Dict[str, Any]:
        """
        Page through a seller's listings.

        All filters are combined with AND. Image references on the returned
        listings are resolved to URLs.
        """
        query = db.query(Product).filter(
            Product.seller_id == user_id,
            Product.status.in_(filters.statuses()),
        )

        if filters.category_id:
            query = query.filter(Product.category_id == filters.category_id)
        if filters.min_price is not None:
            query = query.filter(Product.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(Product.price <= filters.max_price)
        if filters.condition:
            query = query.filter(Product.condition.in_([c.value for c in filters.condition]))

        total = query.count()
        products = (
            query.order_by(*SORT_ORDERS[filters.sort_by])
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )

        total_pages = math.ceil(total / filters.limit)
        return {
            "data": [ProductService._serialize(product, images) for product in products],
            "pagination": {
                "page": filters.page,
                "limit": filters.limit,
                "total": total,
                "totalPages": total_pages,
                "hasMore": filters.page < total_pages,
            },
        }

    @staticmethod
    def _serialize(product: Product, images: ImageStorage) -> Dict[str, Any]:
        return {
            "id": product.id,
            "title": product.title,
            "price": product.price,
            "originalPrice": product.original_price,
            "images": images.resolve_all(product.images),
            "size": product.size,
            "condition": product.condition,
            "brand": product.brand,
            "location": product.location,
            "status": product.status,
            "viewCount": product.view_count,
            "favoriteCount": product.favorite_count,
            "createdAt": product.created_at.isoformat() if product.created_at else None,
        }


product_service = ProductService()
