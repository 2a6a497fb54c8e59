"""
Products API endpoints for catalog management.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from stockledger.core.database import get_db
from stockledger.schemas.product import Category, ProductCreate, ProductUpdate, ProductWithStock
from stockledger.service import InventoryService, get_inventory_service

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("", response_model=ProductWithStock, status_code=status.HTTP_201_CREATED)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """
    Create a new product.

    - **code**: Unique product code
    - **category**: electronics, clothing, food, books or other
    - **unit_price**: Positive price, two decimals
    - **min_stock_level**: Low-stock threshold
    """
    product = service.create_product(db, product_data)
    return service.get_product(db, product.id)


@router.get("", response_model=list[ProductWithStock])
def list_products(
    category: Optional[Category] = None,
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """List products in catalog order with their current stock."""
    return service.list_products(db, category)


@router.get("/{product_id}", response_model=ProductWithStock)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """Get a specific product by ID."""
    return service.get_product(db, product_id)


@router.put("/{product_id}", response_model=ProductWithStock)
@router.patch("/{product_id}", response_model=ProductWithStock)
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """
    Update a product.

    The code of a product that already appears in a transaction cannot change.
    """
    service.update_product(db, product_id, product_data)
    return service.get_product(db, product_id)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service)
):
    """Delete a product that no transaction references."""
    service.delete_product(db, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
