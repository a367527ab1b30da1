from sqlalchemy import Column, String, Integer, Text, CheckConstraint
from src.shortlink.core.config import MAX_SHORTLINK_LENGTH
from src.shortlink.db.base import BaseModel


class Link(BaseModel):
    __tablename__ = "links"
    __table_args__ = (CheckConstraint("hits >= 0", name="ck_links_hits_non_negative"),)

    shortlink = Column(String(MAX_SHORTLINK_LENGTH), unique=True, index=True, nullable=False)
    longlink = Column(Text, nullable=False)
    hits = Column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Link {self.shortlink!r} -> {self.longlink!r} hits={self.hits}>"
