"""
SQLAlchemy persistence for image records and the content tables
the cleanup sweep searches for references.
"""
from typing import AsyncIterator, Iterable, List, Optional

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from apps.media.storage.models import Base, Image, Page, PageRevision


class Database:
    """Engine and session factory, created on first use"""

    def __init__(self, db_url: str):
        self.db_url = db_url
        self._engine = None
        self._session_factory = None

    def session(self):
        if self._session_factory is None:
            # Create engine with pre_ping for resilient connections
            self._engine = create_engine(self.db_url, pool_pre_ping=True)
            Base.metadata.create_all(bind=self._engine)
            # Records are handed back to callers after the session closes
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory()

    def dispose(self):
        if self._engine is not None:
            self._engine.dispose()


class SqlImageStore:
    """Image record store"""

    def __init__(self, db: Database):
        self.db = db

    async def create(self, fields: dict) -> Image:
        with self.db.session() as s:
            image = Image(**fields)
            s.add(image)
            s.commit()
            return image

    async def get(self, image_id: int) -> Optional[Image]:
        with self.db.session() as s:
            return s.get(Image, image_id)

    async def update(self, image: Image, fields: dict) -> Image:
        with self.db.session() as s:
            image = s.merge(image)
            for key, value in fields.items():
                setattr(image, key, value)
            s.commit()
            return image

    async def delete(self, image: Image) -> None:
        with self.db.session() as s:
            record = s.get(Image, image.id)
            if record is not None:
                s.delete(record)
                s.commit()

    async def query_by_types(self, types: Iterable[str], batch_size: int = 1000) -> AsyncIterator[List[Image]]:
        """
        Yield images of the given types in batches ordered by id.
        Batches are keyed on the last seen id, so deleting yielded images
        between batches does not skip any rows.
        """
        types = list(types)
        if not types:
            return
        last_id = 0
        while True:
            with self.db.session() as s:
                batch = list(
                    s.scalars(
                        select(Image)
                        .where(Image.type.in_(types), Image.id > last_id)
                        .order_by(Image.id)
                        .limit(batch_size)
                    )
                )
            if not batch:
                return
            yield batch
            last_id = batch[-1].id


class SqlContentReferences:
    """Counts content rows whose HTML contains a given string"""

    def __init__(self, db: Database):
        self.db = db

    async def count_containing(self, substring: str, revisions: bool = False) -> int:
        model = PageRevision if revisions else Page
        with self.db.session() as s:
            return s.scalar(
                select(func.count())
                .select_from(model)
                .where(model.html.contains(substring, autoescape=True))
            ) or 0
