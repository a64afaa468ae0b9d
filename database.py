import os
import uuid
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from reelmetrics.models import RunOutput

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
# SQLAlchemy requires 'postgresql://' instead of 'postgres://' sometimes
if DATABASE_URL and DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Run history is optional: without DATABASE_URL only the metrics file is kept.
engine: Optional[Engine] = create_engine(DATABASE_URL) if DATABASE_URL else None
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine else None
Base = declarative_base()


class MetricsRun(Base):
    __tablename__ = "metrics_runs"
    id = Column(String, primary_key=True)
    task_id = Column(String, nullable=True)
    updated_at = Column(String)
    total_likes = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    videos = relationship("VideoMetric", back_populates="run", cascade="all, delete-orphan")


class VideoMetric(Base):
    __tablename__ = "video_metrics"
    id = Column(String, primary_key=True)
    run_id = Column(String, ForeignKey("metrics_runs.id"))
    video_id = Column(Integer)
    title = Column(String)
    url = Column(String)
    likes = Column(Integer, nullable=True)

    run = relationship("MetricsRun", back_populates="videos")


def init_db(bind: Optional[Engine] = None):
    target = bind or engine
    if target is not None:
        Base.metadata.create_all(bind=target)


def record_run(db: Session, run: RunOutput, task_id: Optional[str] = None) -> MetricsRun:
    db_run = MetricsRun(
        id=str(uuid.uuid4()),
        task_id=task_id,
        updated_at=run.updated_at,
        total_likes=run.totals.likes,
    )
    for video in run.videos:
        db_run.videos.append(VideoMetric(
            id=str(uuid.uuid4()),
            video_id=video.id,
            title=video.title,
            url=video.url,
            likes=video.likes,
        ))
    db.add(db_run)
    db.commit()
    return db_run


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
