# backend/reception/routers/managers.py
# Minimal registry of managers who hold receptions; profiles live elsewhere.

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..models.reception import Managers as DBManagers
from ..schemas.managers import ManagerCreate, ManagerRead

router = APIRouter(prefix="/managers", tags=["managers"])


@router.get("/", response_model=list[ManagerRead])
def list_managers(db: Session = Depends(get_db)):
    return (
        db.query(DBManagers)
        .filter(DBManagers.is_active.is_(True))
        .order_by(DBManagers.id)
        .all()
    )


@router.get("/{id}", response_model=ManagerRead)
def get_manager(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBManagers, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post(
    "/",
    response_model=ManagerRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_manager(
    data: ManagerCreate,
    db: Session = Depends(get_db),
):
    obj = DBManagers(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj
