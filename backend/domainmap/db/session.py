import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from domainmap.config import DATABASE_URL
from domainmap.db.models import BuildLog

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def record_build(
    graph_id: str,
    row_count: int,
    node_count: int,
    edge_count: int,
    status: str,
    detail: Optional[str] = None,
) -> bool:
    """Write one audit row. Persistence is best effort; returns False when the DB is unavailable."""
    db = SessionLocal()
    try:
        db.add(BuildLog(
            graph_id=graph_id,
            row_count=row_count,
            node_count=node_count,
            edge_count=edge_count,
            status=status,
            detail=detail,
        ))
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("[DB] build log not written: %s", e.__class__.__name__)
        return False
    finally:
        db.close()
