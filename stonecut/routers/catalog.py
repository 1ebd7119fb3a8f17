from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from .. import catalog, models, schemas
from ..database import get_db

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/seed")
def seed(db: Session = Depends(get_db)):
    """Seed default catalog rows."""
    return {"ok": True, "seeded": catalog.seed_catalog(db)}

@router.get("/products", response_model=List[schemas.StoneProduct])
def list_products(search: str = "", limit: Optional[int] = None,
                  contract_type: Optional[str] = None, db: Session = Depends(get_db)):
    return catalog.search_products(db, search=search, limit=limit, contract_type=contract_type)

@router.get("/products/{product_id}", response_model=schemas.StoneProduct)
def get_product(product_id: str, db: Session = Depends(get_db)):
    product = catalog.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

@router.get("/cutting-types", response_model=List[schemas.CuttingType])
def list_cutting_types(db: Session = Depends(get_db)):
    return catalog.list_cutting_types(db)

@router.patch("/cutting-types/{code}", response_model=schemas.CuttingType)
def update_cutting_type(code: models.CuttingCode, update: schemas.CuttingTypeUpdate,
                        db: Session = Depends(get_db)):
    cutting_type = db.query(models.CuttingType).filter(models.CuttingType.code == code.value).first()
    if not cutting_type:
        raise HTTPException(status_code=404, detail="Cutting type not found, run /catalog/seed first")
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(cutting_type, field, value)
    db.commit()
    db.refresh(cutting_type)
    return cutting_type

@router.get("/tools", response_model=List[schemas.Tool])
def list_tools(search: str = "", limit: Optional[int] = None, db: Session = Depends(get_db)):
    return catalog.search_tools(db, search=search, limit=limit)

@router.get("/finishings", response_model=List[schemas.StoneFinishing])
def list_finishings(db: Session = Depends(get_db)):
    return catalog.list_finishings(db)

@router.get("/layer-types", response_model=List[schemas.LayerType])
def list_layer_types(db: Session = Depends(get_db)):
    return catalog.list_layer_types(db)
