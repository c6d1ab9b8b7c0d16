from typing import Optional, Sequence
from sqlalchemy import func
from sqlmodel import Session, select

import models
from models import utc_now
from schemas import product_schemas


def get_product(db: Session, product_id: int) -> Optional[models.Product]:
    return db.get(models.Product, product_id)

def list_products(db: Session) -> Sequence[models.Product]:
    return db.exec(select(models.Product).order_by(models.Product.name)).all()

def create_product(db: Session, product_in: product_schemas.ProductCreate) -> models.Product:
    db_product = models.Product(**product_in.model_dump())
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product

def update_product(
    db: Session, product: models.Product, product_in: product_schemas.ProductUpdate
) -> models.Product:
    for field, value in product_in.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(product, field, value)
    product.updated_at = utc_now()
    db.add(product)
    db.commit()
    db.refresh(product)
    return product

def count_demos(db: Session, product_id: int) -> int:
    statement = select(func.count(models.Demo.id)).where(models.Demo.product_id == product_id)
    return db.exec(statement).one()

def delete_product(db: Session, product: models.Product) -> None:
    db.delete(product)
    db.commit()
