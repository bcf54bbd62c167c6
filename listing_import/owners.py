# listing_import/owners.py
"""Resolution of the account that owns imported listings."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import config
from .errors import OwnerResolutionError
from .models import Profile
from .utils import logger

AGENCY = "agency"
ADMIN = "admin"


def parse_bearer(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_identity(db: Session, token: Optional[str]) -> Optional[Profile]:
    if not token:
        return None
    return db.execute(select(Profile).where(Profile.access_token == token)).scalar_one_or_none()


def find_system_account(db: Session, email: str = config.SPACEST_AGENCY_EMAIL) -> Optional[Profile]:
    return db.execute(
        select(Profile).where(Profile.email == email, Profile.user_type == AGENCY)
    ).scalar_one_or_none()


def get_or_create_system_account(
    db: Session,
    email: str = config.SPACEST_AGENCY_EMAIL,
    agency_name: str = config.SPACEST_AGENCY_NAME,
) -> Profile:
    """Idempotent; a concurrent creator loses on the unique email and re-reads."""
    existing = find_system_account(db, email)
    if existing is not None:
        return existing
    profile = Profile(email=email, user_type=AGENCY, agency_name=agency_name)
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_system_account(db, email)
        if existing is None:
            raise OwnerResolutionError(f"profile {email} exists but is not an agency account")
        return existing
    db.refresh(profile)
    logger.info("Created system agency account %s (id=%s)", email, profile.id)
    return profile


def resolve_owner(
    db: Session,
    requesting: Optional[Profile] = None,
    *,
    create_if_missing: bool = False,
    email: str = config.SPACEST_AGENCY_EMAIL,
) -> Profile:
    existing = find_system_account(db, email)
    if existing is not None:
        logger.info("Using existing agency account %s", existing.id)
        return existing
    if requesting is not None:
        logger.info("No agency account %s, falling back to requesting profile %s", email, requesting.id)
        return requesting
    if create_if_missing:
        return get_or_create_system_account(db, email)
    raise OwnerResolutionError(
        "No authentication provided and no agency account exists. "
        f"Create the {email} agency profile first."
    )
