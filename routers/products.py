from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session
from typing import List

import models
from database import get_session
from core import dependencies
from crud import product_crud
from schemas import product_schemas

router = APIRouter(
    prefix="/api/products",
    tags=["Products"],
)


def _get_or_404(db: Session, product_id: int) -> models.Product:
    product = product_crud.get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.get("", response_model=List[product_schemas.ProductRead])
async def list_products(
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    return product_crud.list_products(db)


@router.get("/{product_id}", response_model=product_schemas.ProductRead)
async def get_product(
    product_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    return _get_or_404(db, product_id)


@router.post("", response_model=product_schemas.ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_in: product_schemas.ProductCreate,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_admin),
):
    return product_crud.create_product(db, product_in)


@router.put("/{product_id}", response_model=product_schemas.ProductRead)
async def update_product(
    product_id: int,
    product_in: product_schemas.ProductUpdate,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_admin),
):
    product = _get_or_404(db, product_id)
    return product_crud.update_product(db, product, product_in)


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_admin),
):
    product = _get_or_404(db, product_id)
    demo_count = product_crud.count_demos(db, product_id)
    if demo_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Product has {demo_count} demo(s); delete or move them first",
        )
    product_crud.delete_product(db, product)
    return {"message": "Product deleted"}
