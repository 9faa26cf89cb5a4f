"""
Pydantic models for public catalog endpoints (products, categories, add-ons).
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ProductResponse(BaseModel):
    """
    A saree in the catalog.

    Fields:
        id: Product UUID
        name: Display name
        price: Unit price in INR
        images: Public image URLs, the first one is the cover
        categories: Joined category ({"name": ...}) when requested
    """
    id: str = Field(..., description="Product UUID")
    name: str = Field(..., description="Product name")
    description: Optional[str] = Field(None, description="Rich-text description (sanitized HTML)")
    price: float = Field(..., description="Unit price in INR")
    images: Optional[List[str]] = Field(None, description="Image URLs")
    category_id: Optional[str] = Field(None, description="Category UUID")
    color: Optional[str] = Field(None, description="Primary color", examples=["Maroon"])
    fabric: Optional[str] = Field(None, description="Fabric", examples=["Silk", "Cotton"])
    sku: Optional[str] = Field(None, description="Stock keeping unit")
    available: Optional[bool] = Field(None, description="Whether the product can be ordered")
    is_best_seller: Optional[bool] = Field(None, description="Shown in the best sellers rail")
    categories: Optional[Dict[str, Any]] = Field(None, description="Joined category")
    created_at: Optional[str] = Field(None, description="ISO-8601 timestamp")

    model_config = {"extra": "allow"}


class ProductListResponse(BaseModel):
    products: List[ProductResponse] = Field(..., description="Products matching the filters")
    count: int = Field(..., description="Number of products returned")
    limit: int = Field(..., description="Page size applied")
    offset: int = Field(..., description="Offset applied")


class ProductDetailResponse(BaseModel):
    product: ProductResponse


class CategoryResponse(BaseModel):
    id: str = Field(..., description="Category UUID")
    name: str = Field(..., description="Category name", examples=["Banarasi"])
    description: Optional[str] = Field(None, description="Category description")
    image_url: Optional[str] = Field(None, description="Category image URL")

    model_config = {"extra": "allow"}


class CategoryListResponse(BaseModel):
    categories: List[CategoryResponse]
    count: int


class AddOnResponse(BaseModel):
    """A purchasable extra such as fall & pico or blouse stitching."""
    id: str = Field(..., description="Add-on UUID")
    name: str = Field(..., description="Add-on name", examples=["Fall & Pico"])
    price: float = Field(..., description="Price in INR added per unit")
    description: Optional[str] = Field(None, description="Add-on description")

    model_config = {"extra": "allow"}


class AddOnListResponse(BaseModel):
    add_ons: List[AddOnResponse]
    count: int
