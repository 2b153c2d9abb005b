from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db, EngineConfigDB
from pydantic import BaseModel
from typing import Any

from services.availability import WINDOW_CONFIG_KEY, load_window
from services.errors import ValidationError

router = APIRouter(prefix="/config", tags=["Config"])

class ConfigItem(BaseModel):
    key: str
    value: Any

@router.get("/{key}")
async def get_config(key: str, db: Session = Depends(get_db)):
    item = db.query(EngineConfigDB).filter(EngineConfigDB.key == key).first()
    if not item:
        return {"key": key, "value": None}
    return {"key": item.key, "value": item.value_json}

@router.post("/save")
async def save_config(item: ConfigItem, db: Session = Depends(get_db)):
    db_item = db.query(EngineConfigDB).filter(EngineConfigDB.key == item.key).first()
    previous = db_item.value_json if db_item else None
    if db_item:
        db_item.value_json = item.value
    else:
        db_item = EngineConfigDB(key=item.key, value_json=item.value)
        db.add(db_item)

    if item.key == WINDOW_CONFIG_KEY:
        # Reject a window the deriver could not use; ValidationError maps to 400
        db.flush()
        try:
            load_window(db)
        except ValidationError:
            db.rollback()
            raise

    db.commit()
    return {"status": "saved", "key": item.key, "replaced": previous is not None}
