from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, require_admin
from app.core.errors import NotFound, ValidationError
from app.core.logging_config import get_logger
from app.models.catalogue import Activity, DiyKit
from app.models.user import User
from app.schemas.catalogue import ActivityIn, ActivityOut, DiyKitIn, DiyKitOut
from app.services.store import run_in_transaction
from app.utils.validators import parse_positive_amount, require_fields

router = APIRouter(prefix="/api/addons", tags=["Catalogue"])
logger = get_logger()


def _name_taken(db: Session, model, name: str, exclude_id: int | None = None) -> bool:
    query = db.query(model.id).filter(func.lower(model.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    return query.first() is not None


def _image_url(value: str | None) -> str | None:
    return (value or "").strip() or None


def _kit_price(value) -> int:
    try:
        return parse_positive_amount(value)
    except ValidationError:
        raise ValidationError("Price must be a positive number")


# =====================================================================
#                           ACTIVITIES
# =====================================================================
@router.get("/activities")
def list_activities(db: Session = Depends(get_db)):
    activities = db.query(Activity).order_by(Activity.created_at.desc(), Activity.id.desc()).all()
    return {"success": True, "activities": [ActivityOut.model_validate(a) for a in activities]}


@router.post("/activities")
def create_activity(
    data: ActivityIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    require_fields({"name": data.name, "description": data.description},
                   "Name and description are required")
    name = data.name.strip()
    if _name_taken(db, Activity, name):
        raise ValidationError("Activity with this name already exists")

    activity = Activity(name=name, description=data.description.strip(), image_url=_image_url(data.image_url))

    def work():
        db.add(activity)
        db.flush()
        return activity

    run_in_transaction(db, work)
    db.refresh(activity)
    logger.bind(log_type="admin").info(f"{admin.email} created activity {activity.name}")
    return {"success": True, "activity": ActivityOut.model_validate(activity)}


@router.put("/activities/{activity_id}")
def update_activity(
    activity_id: int,
    data: ActivityIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    require_fields({"name": data.name, "description": data.description},
                   "Name and description are required")
    activity = db.query(Activity).filter(Activity.id == activity_id).first()
    if not activity:
        raise NotFound("Activity not found")
    name = data.name.strip()
    if _name_taken(db, Activity, name, exclude_id=activity_id):
        raise ValidationError("Activity with this name already exists")

    def work():
        activity.name = name
        activity.description = data.description.strip()
        activity.image_url = _image_url(data.image_url)
        return activity

    run_in_transaction(db, work)
    db.refresh(activity)
    logger.bind(log_type="admin").info(f"{admin.email} updated activity {activity_id}")
    return {"success": True, "activity": ActivityOut.model_validate(activity)}


@router.delete("/activities/{activity_id}")
def delete_activity(
    activity_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    def work():
        # deleting a missing activity is not an error
        db.query(Activity).filter(Activity.id == activity_id).delete()

    run_in_transaction(db, work)
    logger.bind(log_type="admin").info(f"{admin.email} deleted activity {activity_id}")
    return {"success": True, "message": "Activity deleted successfully"}


# =====================================================================
#                           DIY KITS
# =====================================================================
@router.get("/diy-kits")
def list_kits(db: Session = Depends(get_db)):
    kits = db.query(DiyKit).order_by(DiyKit.created_at.desc(), DiyKit.id.desc()).all()
    return {"success": True, "kits": [DiyKitOut.model_validate(k) for k in kits]}


@router.get("/diy-kits/name/{name}")
def get_kit_by_name(name: str, db: Session = Depends(get_db)):
    kit = db.query(DiyKit).filter(DiyKit.name == name).first()
    if not kit:
        raise NotFound("DIY kit not found")
    return {"success": True, "kit": DiyKitOut.model_validate(kit)}


@router.post("/diy-kits")
def create_kit(
    data: DiyKitIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    require_fields({"name": data.name, "price": data.price, "description": data.description},
                   "Name, price, and description are required")
    price = _kit_price(data.price)
    name = data.name.strip()
    if _name_taken(db, DiyKit, name):
        raise ValidationError("DIY kit with this name already exists")

    kit = DiyKit(name=name, price=price, description=data.description.strip(),
                 image_url=_image_url(data.image_url))

    def work():
        db.add(kit)
        db.flush()
        return kit

    run_in_transaction(db, work)
    db.refresh(kit)
    logger.bind(log_type="admin").info(f"{admin.email} created DIY kit {kit.name} | price={kit.price}")
    return {"success": True, "kit": DiyKitOut.model_validate(kit)}


@router.put("/diy-kits/{kit_id}")
def update_kit(
    kit_id: int,
    data: DiyKitIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    require_fields({"name": data.name, "price": data.price, "description": data.description},
                   "Name, price, and description are required")
    price = _kit_price(data.price)
    kit = db.query(DiyKit).filter(DiyKit.id == kit_id).first()
    if not kit:
        raise NotFound("DIY kit not found")
    name = data.name.strip()
    if _name_taken(db, DiyKit, name, exclude_id=kit_id):
        raise ValidationError("DIY kit with this name already exists")

    def work():
        kit.name = name
        kit.price = price
        kit.description = data.description.strip()
        kit.image_url = _image_url(data.image_url)
        return kit

    run_in_transaction(db, work)
    db.refresh(kit)
    logger.bind(log_type="admin").info(f"{admin.email} updated DIY kit {kit_id}")
    return {"success": True, "kit": DiyKitOut.model_validate(kit)}


@router.delete("/diy-kits/{kit_id}")
def delete_kit(
    kit_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    def work():
        db.query(DiyKit).filter(DiyKit.id == kit_id).delete()

    run_in_transaction(db, work)
    logger.bind(log_type="admin").info(f"{admin.email} deleted DIY kit {kit_id}")
    return {"success": True, "message": "DIY kit deleted successfully"}
