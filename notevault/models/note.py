"""Note, Tag and RecentModification models."""

from sqlalchemy import Column, Index, Integer, Text, DateTime, ForeignKey
from ..database import Base, local_now


class Note(Base):
    """A markdown note. ``folder_id`` NULL means top level."""

    __tablename__ = "notes"
    __table_args__ = (
        Index("idx_notes_userid", "userid"),
        Index("idx_notes_folderid", "folderid"),
        {"sqlite_autoincrement": True},
    )

    note_id = Column("noteid", Integer, primary_key=True)
    user_id = Column("userid", Integer, ForeignKey("users.userid", ondelete="CASCADE"), nullable=False)
    folder_id = Column("folderid", Integer, ForeignKey("folders.folderid", ondelete="CASCADE"), nullable=True)
    title = Column(Text, nullable=False)
    content = Column(Text)
    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now)


class Tag(Base):
    """A tag derived from a note's front matter. Regenerated on every save."""

    __tablename__ = "tags"
    __table_args__ = (
        Index("idx_tags_tag", "tag"),
        {"sqlite_autoincrement": True},
    )

    tag_id = Column("tagid", Integer, primary_key=True)
    note_id = Column("noteid", Integer, ForeignKey("notes.noteid", ondelete="CASCADE"), nullable=False)
    tag = Column(Text, nullable=False)


class RecentModification(Base):
    """Last touch of a note by its owner. One row per (user, note)."""

    __tablename__ = "recent_modifications"
    __table_args__ = (
        Index("idx_recent_mods_userid", "userid", "modified_at"),
    )

    user_id = Column("userid", Integer, ForeignKey("users.userid", ondelete="CASCADE"), primary_key=True)
    note_id = Column("noteid", Integer, ForeignKey("notes.noteid", ondelete="CASCADE"), primary_key=True)
    modified_at = Column(DateTime, default=local_now)
