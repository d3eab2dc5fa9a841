"""Seed the hidden root folder.

Folder id 1 is reserved as a hidden placeholder root. The ``folders``
AUTOINCREMENT sequence is primed so user folders never take id 1, and the
placeholder row itself is inserted once a user exists to own it (the
``userid`` column is NOT NULL). Idempotent: runs at every schema init and
again on every user registration.
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from ..models.folder import Folder, ROOT_FOLDER_ID, ROOT_FOLDER_NAME
from ..models.user import User

logger = logging.getLogger(__name__)


def _prime_folder_sequence(db: Session) -> None:
    # sqlite_sequence only exists once some table was declared AUTOINCREMENT.
    has_sequence = db.execute(
        text("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'")
    ).first()
    if has_sequence is None:
        return
    row = db.execute(
        text("SELECT seq FROM sqlite_sequence WHERE name = 'folders'")
    ).first()
    if row is None:
        db.execute(text("INSERT INTO sqlite_sequence (name, seq) VALUES ('folders', :seq)"),
                   {"seq": ROOT_FOLDER_ID})
    elif row[0] < ROOT_FOLDER_ID:
        db.execute(text("UPDATE sqlite_sequence SET seq = :seq WHERE name = 'folders'"),
                   {"seq": ROOT_FOLDER_ID})


def seed_root_folder(db: Session, owner_id: Optional[int] = None) -> bool:
    """Ensure the folder sequence is primed and the root placeholder exists.

    Args:
        db: An open session. Committed here unless it is inside a
            ``transaction()`` scope, in which case the caller commits.
        owner_id: User to own the placeholder; defaults to the first user.

    Returns:
        True if the root row was inserted by this call.
    """
    in_scope = getattr(db, "transaction_depth", 0) > 0

    _prime_folder_sequence(db)

    inserted = False
    if db.query(Folder).filter(Folder.folder_id == ROOT_FOLDER_ID).first() is None:
        if owner_id is None:
            first_user = db.query(User).order_by(User.user_id).first()
            owner_id = first_user.user_id if first_user else None
        if owner_id is not None:
            db.add(Folder(folder_id=ROOT_FOLDER_ID, user_id=owner_id,
                          parent_id=None, name=ROOT_FOLDER_NAME))
            db.flush()
            inserted = True
            logger.info("Seeded hidden root folder (owner userid=%d)", owner_id)

    if not in_scope:
        db.commit()
    return inserted
