"""
============================================================
 Acuity Check — Local History Store
 Logs every completed vision test to SQLite via SQLAlchemy.
 Used directly as the offline store and as the fallback
 when the Firestore write fails.
============================================================
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, scoped_session, sessionmaker

import config

log = logging.getLogger(__name__)

Base = declarative_base()
engine = None
Session = scoped_session(sessionmaker(expire_on_commit=False))


class VisionTest(Base):
    """One completed two-eye screening."""
    __tablename__ = "vision_tests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    right_eye = Column(String(10), nullable=False)   # e.g. "6/9"
    left_eye = Column(String(10), nullable=False)
    right_logmar = Column(Float, nullable=False)
    left_logmar = Column(Float, nullable=False)
    source = Column(String(20), default="local")     # local, fallback

    def __repr__(self):
        return f"<VisionTest #{self.id} R={self.right_eye} L={self.left_eye} @ {self.timestamp}>"

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "right_eye": self.right_eye,
            "left_eye": self.left_eye,
            "right_logmar": self.right_logmar,
            "left_logmar": self.left_logmar,
            "source": self.source,
        }


def init_db(uri: str | None = None):
    """Bind the session factory and create tables if they don't exist."""
    global engine
    engine = create_engine(uri or config.DATABASE_URI, echo=False)
    Session.remove()
    Session.configure(bind=engine)
    Base.metadata.create_all(engine)
    return engine


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(value)
    return datetime.now(timezone.utc)


def log_vision_test(record: dict, source: str = "local") -> VisionTest:
    """
    Persist one history record. Raises on failure so callers can
    decide how loudly to report it.
    """
    if engine is None:
        init_db()
    session = Session()
    try:
        row = VisionTest(
            timestamp=_parse_timestamp(record.get("timestamp")),
            right_eye=record["right_eye"],
            left_eye=record["left_eye"],
            right_logmar=record["right_logmar"],
            left_logmar=record["left_logmar"],
            source=source,
        )
        session.add(row)
        session.commit()
        log.info("[DB] Saved %r", row)
        return row
    except Exception:
        session.rollback()
        raise
    finally:
        Session.remove()


def get_recent_tests(limit: int = config.HISTORY_LIMIT):
    """Fetch the most recent screenings, newest first."""
    if engine is None:
        init_db()
    session = Session()
    try:
        rows = (
            session.query(VisionTest)
            .order_by(VisionTest.timestamp.desc(), VisionTest.id.desc())
            .limit(limit)
            .all()
        )
        return [r.to_dict() for r in rows]
    finally:
        Session.remove()
