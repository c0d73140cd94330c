from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class BuildLog(Base):
    __tablename__ = "build_logs"

    id = Column(Integer, primary_key=True)
    graph_id = Column(String(64), index=True)
    row_count = Column(Integer, nullable=False, default=0)
    node_count = Column(Integer, nullable=False, default=0)
    edge_count = Column(Integer, nullable=False, default=0)
    status = Column(String(32), nullable=False)  # success | invalid
    detail = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
