"""Module B: Villa creation and visibility rules."""
from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from app.models.user import User, STAFF_SIDE_ROLES
from app.models.villa import Villa, VillaStatus

VILLA_CODE_PREFIX = "VIL"


def generate_villa_code(db: Session) -> str:
    """Next free code: VIL + zero-padded sequence (VIL0001, VIL0002, ...)."""
    n = db.query(Villa).count() + 1
    while True:
        code = f"{VILLA_CODE_PREFIX}{n:04d}"
        if db.query(Villa.id).filter(Villa.villa_code == code).first() is None:
            return code
        n += 1


def create_villa(db: Session, owner: User | None, villa_name: str, **fields) -> Villa:
    """Add a DRAFT villa with a fresh code. Flushes; commit remains with caller."""
    villa = Villa(
        villa_code=generate_villa_code(db),
        owner_user_id=owner.id if owner else None,
        villa_name=(villa_name or "").strip() or "New Villa",
        status=VillaStatus.DRAFT,
        is_active=True,
        **fields,
    )
    db.add(villa)
    db.flush()
    return villa


def can_access_villa(user: User, villa: Villa) -> bool:
    if user.role in STAFF_SIDE_ROLES:
        return True
    return villa.owner_user_id == user.id


def visible_villas(db: Session, user: User) -> Query:
    """Admins and managers see every villa; everyone else only the villas they own."""
    q = db.query(Villa)
    if user.role not in STAFF_SIDE_ROLES:
        q = q.filter(Villa.owner_user_id == user.id)
    return q


def apply_villa_filters(q: Query, status: VillaStatus | None = None, search: str | None = None) -> Query:
    if status is not None:
        q = q.filter(Villa.status == status)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(
            or_(
                Villa.villa_name.ilike(like),
                Villa.villa_code.ilike(like),
                Villa.city.ilike(like),
                Villa.location.ilike(like),
            )
        )
    return q
