"""
Модели запросов HTTP API
"""
from typing import Optional, List, Dict, Any, Union

from pydantic import BaseModel, ConfigDict, Field


class ProductRecord(BaseModel):
    """Запись каталога (camelCase, как в хранилище каталога)"""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str
    description: str = ""
    category: Optional[str] = None
    brand: Optional[str] = None
    price: float = Field(0.0, ge=0)
    originalPrice: Optional[float] = None
    discount: Optional[int] = None
    rating: float = Field(0.0, ge=0, le=5)
    numReviews: int = Field(0, ge=0)
    stock: int = Field(0, ge=0)
    tags: List[str] = []
    attributes: Dict[str, Any] = {}
    images: List[Any] = []
    seller: Optional[Union[str, Dict[str, Any]]] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    views: int = Field(0, ge=0)
    sales: int = Field(0, ge=0)

    def to_record(self, product_id: Optional[str] = None) -> Dict[str, Any]:
        record = self.model_dump()
        if product_id is not None:
            record["id"] = product_id
        return record


class BulkIndexRequest(BaseModel):
    products: List[ProductRecord]
    refresh: bool = False


class ClickTrack(BaseModel):
    query: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    session_id: Optional[str] = None
