# backend/routes/dentists.py
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, UserRole
from schemas.user import DentistOut

router = APIRouter(prefix="/dentists", tags=["Dentists"])


class DentistsPage(BaseModel):
    dentists: List[DentistOut]


# Public list of dentists for the booking form
@router.get("", response_model=DentistsPage)
def list_dentists(db: Session = Depends(get_db)):
    dentists = (
        db.query(User)
        .filter(User.role == UserRole.DENTIST.value)
        .order_by(User.display_name.asc(), User.id.asc())
        .all()
    )
    return {"dentists": [DentistOut.model_validate(d) for d in dentists]}
