from sqlalchemy.orm import declarative_base, mapped_column
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey
from datetime import datetime

Base = declarative_base()

# uploaded_to value for images not attached to any page
UNATTACHED = 0

IMAGE_TYPES = ("gallery", "drawio", "user", "system", "cover_book", "cover_bookshelf")

# Only these can be removed by the unused-image sweep
SWEEPABLE_TYPES = ("gallery", "drawio")


class Image(Base):
    """Stored source image"""
    __tablename__ = "images"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    name = mapped_column(String(255), nullable=False)  # Original file name
    path = mapped_column(String(400), nullable=False, index=True)  # Source bytes, never rewritten
    url = mapped_column(String(500), nullable=False)
    type = mapped_column(String(32), nullable=False, index=True)
    uploaded_to = mapped_column(Integer, default=UNATTACHED, nullable=False, index=True)
    created_by = mapped_column(String(64), nullable=True)  # None for system uploads
    updated_by = mapped_column(String(64), nullable=True)
    created_at = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Image(id={self.id}, type={self.type}, path={self.path})>"


class Page(Base):
    """Content unit whose HTML may embed images"""
    __tablename__ = "pages"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    name = mapped_column(String(255), nullable=False)
    html = mapped_column(Text, nullable=False, default="")
    updated_at = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class PageRevision(Base):
    """Historical HTML of a page"""
    __tablename__ = "page_revisions"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_id = mapped_column(Integer, ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True)
    html = mapped_column(Text, nullable=False, default="")
    created_at = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
