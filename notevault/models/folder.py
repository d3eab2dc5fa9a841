"""Folder model: one row per node of a user's folder tree."""

from sqlalchemy import Column, Index, Integer, Text, DateTime, ForeignKey
from ..database import Base, local_now

# Reserved hidden root. Never listed, never part of a path, never deleted.
ROOT_FOLDER_ID = 1
ROOT_FOLDER_NAME = ".root"


class Folder(Base):
    """A folder in a user's tree.

    ``parent_id`` NULL means top level (directly under the hidden root).
    Deleting a folder cascades to its descendant folders and their notes
    through the foreign keys, not through application code.
    """

    __tablename__ = "folders"
    __table_args__ = (
        Index("idx_folders_userid", "userid"),
        Index("idx_folders_parent", "parent_folderid"),
        {"sqlite_autoincrement": True},
    )

    folder_id = Column("folderid", Integer, primary_key=True)
    user_id = Column("userid", Integer, ForeignKey("users.userid", ondelete="CASCADE"), nullable=False)
    parent_id = Column(
        "parent_folderid", Integer, ForeignKey("folders.folderid", ondelete="CASCADE"), nullable=True
    )
    name = Column(Text, nullable=False)
    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now)
