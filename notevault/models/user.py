"""User and SystemLog models.

Users are created by registration (``user_service.register_user`` or
``scripts/add_user.py``) and own every folder, note and log row that
references them.
"""

from sqlalchemy import Column, Index, Integer, Text, DateTime, ForeignKey
from ..database import Base, local_now


class User(Base):
    """Account owning one folder tree."""

    __tablename__ = "users"
    __table_args__ = ({"sqlite_autoincrement": True},)

    user_id = Column("userid", Integer, primary_key=True)
    username = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    remember_token = Column(Text, nullable=True)


class SystemLog(Base):
    """Persistent record of an API action.

    Written by ``log_service`` when request logging is enabled; never updated.
    """

    __tablename__ = "system_logs"
    __table_args__ = (
        Index("idx_logs_timestamp", "timestamp"),
        Index("idx_logs_userid", "userid"),
        {"sqlite_autoincrement": True},
    )

    log_id = Column("logid", Integer, primary_key=True)
    timestamp = Column(DateTime, default=local_now)
    message = Column(Text, nullable=False)
    session_id = Column(Text, nullable=True)
    request_method = Column(Text, nullable=True)
    request_uri = Column(Text, nullable=True)
    request_data = Column(Text, nullable=True)
    user_id = Column("userid", Integer, ForeignKey("users.userid", ondelete="CASCADE"), nullable=True)
